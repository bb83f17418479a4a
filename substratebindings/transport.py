# Python Substrate Interface Library
#
# Copyright 2018-2024 Stichting Polkascan (Polkascan Foundation).
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import json
import logging
from typing import List, Optional, Tuple

import requests
from scalecodec.base import ScaleBytes
from websocket import create_connection

from .codec import ScaleCodec
from .constants import FAILED_TRANSACTION_STATUSES
from .exceptions import SubstrateRequestException, ConfigurationError, ItemNotFound, BlockNotFound
from .metadata import InterfaceDescription
from .payload import Payload, PayloadKind
from .utils.hasher import blake2_256

__all__ = ['Transport', 'ExtrinsicReceipt', 'list_remove_iter']

logger = logging.getLogger(__name__)


def list_remove_iter(xs: list):
    removed = False

    def remove():
        nonlocal removed
        removed = True

    i = 0
    while i < len(xs):
        removed = False
        yield xs[i], remove
        if removed:
            xs.pop(i)
        else:
            i += 1


class Transport:

    def __init__(self, url: str = None, websocket=None, codec: ScaleCodec = None, ws_options: dict = None):
        """
        JSON-RPC connection to a Substrate node, over HTTP or websocket. Requests are executed once, failures are
        raised as SubstrateRequestException and never retried.

        Parameters
        ----------
        url: the URL to the substrate node, either in format https://127.0.0.1:9933 or wss://127.0.0.1:9944
        websocket: an existing websocket connection, instead of `url`
        codec: ScaleCodec used to decode the runtime metadata
        ws_options: dict of options to pass to the websocket-client create_connection function
        """
        if (not url and not websocket) or (url and websocket):
            raise ValueError("Either 'url' or 'websocket' must be provided")

        self.url = url
        self.websocket = None
        self.request_id = 1

        self.codec = codec or ScaleCodec()

        # Websocket connection options
        self.ws_options = ws_options or {}

        if 'max_size' not in self.ws_options:
            self.ws_options['max_size'] = 2 ** 32

        self.__rpc_message_queue = []

        if self.url and (self.url[0:6] == 'wss://' or self.url[0:5] == 'ws://'):
            self.connect_websocket()

        elif websocket:
            self.websocket = websocket

        self.default_headers = {
            'content-type': "application/json",
            'cache-control': "no-cache"
        }

        self.config = {
            'rpc_methods': None
        }

        self.interface = None
        self.metadata_block_hash = None

        self.session = requests.Session()

    def connect_websocket(self):
        """
        (Re)creates the websocket connection, if the URL contains a 'ws' or 'wss' scheme
        """
        if self.url and (self.url[0:6] == 'wss://' or self.url[0:5] == 'ws://'):
            self.debug_message("Connecting to {} ...".format(self.url))
            self.websocket = create_connection(
                self.url,
                **self.ws_options
            )

    def close(self):
        if self.websocket:
            self.debug_message("Closing websocket connection")
            self.websocket.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @staticmethod
    def debug_message(message: str):
        logger.debug(message)

    def supports_rpc_method(self, name: str) -> bool:
        """
        Check if substrate RPC supports given method
        Parameters
        ----------
        name: name of method to check

        Returns
        -------
        bool
        """
        if self.config.get('rpc_methods') is None:
            self.config['rpc_methods'] = []
            result = self.rpc_request("rpc_methods", []).get('result')
            if result:
                self.config['rpc_methods'] = result.get('methods', [])

        return name in self.config['rpc_methods']

    def rpc_request(self, method, params, result_handler=None):
        """
        Method that handles the actual RPC request to the Substrate node. The other implemented functions eventually
        use this method to perform the request.

        Parameters
        ----------
        result_handler: Callback function that processes the result received from the node
        method: method of the JSONRPC request
        params: a list containing the parameters of the JSONRPC request

        Returns
        -------
        a dict with the parsed result of the request.
        """

        request_id = self.request_id
        self.request_id += 1

        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": request_id
        }

        self.debug_message('RPC request #{}: "{}"'.format(request_id, method))

        if self.websocket:
            self.websocket.send(json.dumps(payload))

            update_nr = 0
            json_body = None
            subscription_id = None

            while json_body is None:
                # Search for subscriptions
                for message, remove_message in list_remove_iter(self.__rpc_message_queue):

                    # Check if result message is matching request ID
                    if 'id' in message and message['id'] == request_id:

                        remove_message()

                        # Check if response has error
                        if 'error' in message:
                            raise SubstrateRequestException(message['error'])

                        # If result handler is set, pass result through and loop until handler return value is set
                        if callable(result_handler):

                            # Set subscription ID and only listen to messages containing this ID
                            subscription_id = message['result']
                            self.debug_message(f"Websocket subscription [{subscription_id}] created")

                        else:
                            json_body = message

                # Process subscription updates
                for message, remove_message in list_remove_iter(self.__rpc_message_queue):
                    # Check if message is meant for this subscription
                    if 'params' in message and message['params']['subscription'] == subscription_id:

                        remove_message()

                        self.debug_message(f"Websocket result [{subscription_id} #{update_nr}]: {message}")

                        # Call result_handler with message for processing
                        callback_result = result_handler(message, update_nr, subscription_id)
                        if callback_result is not None:
                            json_body = callback_result

                        update_nr += 1

                # Read one more message to queue
                if json_body is None:
                    self.__rpc_message_queue.append(json.loads(self.websocket.recv()))

        else:

            if result_handler:
                raise ConfigurationError("Result handlers only available for websockets (ws://) connections")

            response = self.session.request("POST", self.url, data=json.dumps(payload), headers=self.default_headers)

            if response.status_code != 200:
                raise SubstrateRequestException(
                    "RPC request failed with HTTP status code {}".format(response.status_code))

            json_body = response.json()

            # Check if response has error
            if 'error' in json_body:
                raise SubstrateRequestException(json_body['error'])

        return json_body

    def get_chain_head(self) -> str:
        """
        A pass-though to existing JSONRPC method `chain_getHead`
        """
        if self.supports_rpc_method("chain_getHead"):
            response = self.rpc_request("chain_getHead", [])
        else:
            response = self.rpc_request("chain_getBlockHash", [])

        return response.get('result')

    def get_chain_finalised_head(self) -> str:
        """
        A pass-though to existing JSONRPC method `chain_getFinalizedHead`
        """
        response = self.rpc_request("chain_getFinalizedHead", [])

        return response.get('result')

    def get_block_hash(self, block_id: int = None) -> str:
        """
        A pass-though to existing JSONRPC method `chain_getBlockHash`

        Parameters
        ----------
        block_id

        Returns
        -------
        str
        """
        response = self.rpc_request("chain_getBlockHash", [block_id])

        if response.get('result') is None:
            raise BlockNotFound(f'Block #{block_id} not found')

        return response['result']

    def get_block_number(self, block_hash: str = None) -> Optional[int]:
        """
        Retrieves the block number for given block_hash, chain tip when omitted

        Parameters
        ----------
        block_hash

        Returns
        -------
        int
        """
        response = self.rpc_request("chain_getHeader", [block_hash])

        if response.get('result'):
            return int(response['result']['number'], 16)

    def get_runtime_version(self, block_hash: str = None) -> dict:
        """
        Retrieve the runtime version (specVersion, transactionVersion, ...) of given block_hash
        """
        if self.supports_rpc_method("state_getRuntimeVersion"):
            response = self.rpc_request("state_getRuntimeVersion", [block_hash])
        else:
            response = self.rpc_request("chain_getRuntimeVersion", [block_hash])

        return response.get('result')

    def get_metadata(self, block_hash: str = None) -> dict:
        """
        Retrieves and decodes the `MetadataVersioned` of the runtime at given block, chain tip when omitted

        Returns
        -------
        dict serialized value of the metadata
        """
        params = None
        if block_hash:
            params = [block_hash]

        response = self.rpc_request("state_getMetadata", params)

        if not response.get('result'):
            raise SubstrateRequestException('No metadata returned by node')

        metadata_decoder = self.codec.create_scale_object(
            'MetadataVersioned', data=ScaleBytes(response.get('result'))
        )
        metadata_decoder.decode()

        return metadata_decoder.value

    def fetch_metadata(self, block_hash: str = None) -> InterfaceDescription:
        """
        Retrieves the runtime metadata and converts it to an InterfaceDescription, which is kept for later constant
        lookups

        Parameters
        ----------
        block_hash: Optional block hash, chain tip when omitted

        Returns
        -------
        InterfaceDescription
        """
        if self.interface is not None and block_hash is not None and block_hash == self.metadata_block_hash:
            return self.interface

        self.debug_message(f"Retrieving metadata for block {block_hash or 'chain tip'}")

        self.interface = InterfaceDescription.from_metadata(self.get_metadata(block_hash))
        self.metadata_block_hash = block_hash

        return self.interface

    def get_storage_by_key(self, storage_key: str, block_hash: str = None) -> Optional[str]:
        """
        A pass-though to existing JSONRPC method `state_getStorage`
        """
        response = self.rpc_request("state_getStorage", [storage_key, block_hash])

        return response.get('result')

    def execute_query(self, payload: Payload, block_hash: str = None) -> Optional[bytes]:
        """
        Executes a Query or Constant payload

        Parameters
        ----------
        payload: Payload of kind QUERY, with an exact storage address, or CONSTANT
        block_hash: Optional block hash, chain tip when omitted

        Returns
        -------
        SCALE encoded value, None when the storage entry holds no value
        """
        if payload.kind is PayloadKind.CONSTANT:
            interface = self.interface or self.fetch_metadata()
            constant = interface.get_constant(payload.descriptor.pallet, payload.descriptor.name)

            if constant is None:
                raise ItemNotFound(f'Constant "{payload.descriptor.pallet}.{payload.descriptor.name}" not found')

            return constant.value

        if payload.kind is not PayloadKind.QUERY:
            raise TypeError(f'Payload of kind {payload.kind.value} is not a query')

        if not payload.address.is_exact:
            raise ValueError('Storage address is iterable, use execute_query_map()')

        self.debug_message(f'Query {payload.address}')

        result = self.get_storage_by_key(payload.address.to_hex(), block_hash)

        if result is not None:
            return bytes.fromhex(result[2:])

    def execute_query_map(self, payload: Payload, block_hash: str = None, page_size: int = 100,
                          start_key: str = None, max_results: int = None) -> List[Tuple[bytes, bytes]]:
        """
        Retrieves all key/value pairs below an iterable storage address

        Parameters
        ----------
        payload: Payload of kind QUERY
        block_hash: Optional block hash, chain tip is resolved when omitted
        page_size: The results are fetched from the node RPC in chunks of this size
        start_key: The storage key used as offset for the results
        max_results: the maximum of results required

        Returns
        -------
        list of (storage key, SCALE encoded value) tuples
        """
        if payload.kind is not PayloadKind.QUERY:
            raise TypeError(f'Payload of kind {payload.kind.value} is not a query')

        if block_hash is None:
            block_hash = self.get_chain_head()

        prefix = payload.address.to_hex()

        if not start_key:
            start_key = prefix

        # Make sure if the max result is smaller than the page size, adjust the page size
        if max_results is not None and max_results < page_size:
            page_size = max_results

        result = []

        while True:
            response = self.rpc_request("state_getKeysPaged", [prefix, page_size, start_key, block_hash])
            result_keys = response.get('result') or []

            if len(result_keys) == 0:
                break

            response = self.rpc_request("state_queryStorageAt", [result_keys, block_hash])

            for result_group in response['result']:
                for storage_key, value in result_group['changes']:
                    if value is not None:
                        result.append((bytes.fromhex(storage_key[2:]), bytes.fromhex(value[2:])))

            if max_results is not None and len(result) >= max_results:
                return result[:max_results]

            if len(result_keys) < page_size:
                break

            start_key = result_keys[-1]

        return result

    def call_runtime_method(self, payload: Payload, block_hash: str = None) -> bytes:
        """
        Executes a RuntimeApiCall payload with the `state_call` RPC

        Returns
        -------
        SCALE encoded result
        """
        if payload.kind is not PayloadKind.RUNTIME_API_CALL:
            raise TypeError(f'Payload of kind {payload.kind.value} is not a runtime API call')

        self.debug_message(f"Executing Runtime Call {payload.descriptor.pallet}.{payload.descriptor.name}")

        response = self.rpc_request("state_call", [payload.rpc_method_name, payload.to_hex(), block_hash])

        return bytes.fromhex(response['result'][2:])

    def get_account_nonce(self, account_address: str) -> int:
        response = self.rpc_request("system_accountNextIndex", [account_address])
        return response.get('result', 0)

    def submit(self, extrinsic, wait_for_inclusion: bool = False,
               wait_for_finalization: bool = False) -> "ExtrinsicReceipt":
        """
        Submit an extrinsic to the connected node, with the possibility to wait until the extrinsic is included
        in a block and/or the block is finalized.

        Parameters
        ----------
        extrinsic: SignedExtrinsic or encoded extrinsic bytes
        wait_for_inclusion: wait until extrinsic is included in a block (only works for websocket connections)
        wait_for_finalization: wait until extrinsic is finalized (only works for websocket connections)

        Returns
        -------
        ExtrinsicReceipt
        """
        data = extrinsic if isinstance(extrinsic, (bytes, bytearray)) else extrinsic.data
        extrinsic_hash = '0x{}'.format(blake2_256(bytes(data)).hex())

        def result_handler(message, update_nr, subscription_id):
            if 'params' not in message:
                return

            status = message['params']['result']

            # Unit statuses like 'ready' or 'invalid' are sent as plain strings
            if type(status) is str:
                status = {status: None}

            # Check if extrinsic is included and finalized
            if type(status) is dict:

                # Convert result enum to lower for backwards compatibility
                message_result = {k.lower(): v for k, v in status.items()}

                if any(s in message_result for s in FAILED_TRANSACTION_STATUSES):
                    self.rpc_request('author_unwatchExtrinsic', [subscription_id])
                    raise SubstrateRequestException({
                        'message': f'Extrinsic {extrinsic_hash} not included',
                        'data': message['params']['result']
                    })

                if 'finalized' in message_result and wait_for_finalization:
                    self.rpc_request('author_unwatchExtrinsic', [subscription_id])
                    return {
                        'block_hash': message_result['finalized'],
                        'extrinsic_hash': extrinsic_hash,
                        'finalized': True
                    }
                elif 'inblock' in message_result and wait_for_inclusion and not wait_for_finalization:
                    self.rpc_request('author_unwatchExtrinsic', [subscription_id])
                    return {
                        'block_hash': message_result['inblock'],
                        'extrinsic_hash': extrinsic_hash,
                        'finalized': False
                    }

        if wait_for_inclusion or wait_for_finalization:
            response = self.rpc_request(
                "author_submitAndWatchExtrinsic",
                [f'0x{bytes(data).hex()}'],
                result_handler=result_handler
            )

            result = ExtrinsicReceipt(
                transport=self,
                extrinsic_hash=response['extrinsic_hash'],
                block_hash=response['block_hash'],
                finalized=response['finalized']
            )

        else:

            response = self.rpc_request("author_submitExtrinsic", [f'0x{bytes(data).hex()}'])

            if 'result' not in response:
                raise SubstrateRequestException(response.get('error'))

            result = ExtrinsicReceipt(
                transport=self,
                extrinsic_hash=response['result']
            )

        return result


class ExtrinsicReceipt:
    """
    Object containing information of submitted extrinsic. Block hash where extrinsic is included is only known
    when the submission waited for inclusion or finalization.
    """

    def __init__(self, transport: Transport, extrinsic_hash: str = None, block_hash: str = None,
                 block_number: int = None, finalized: bool = None):
        self.transport = transport
        self.extrinsic_hash = extrinsic_hash
        self.block_hash = block_hash
        self.finalized = finalized
        self.__block_number = block_number

    @property
    def block_number(self) -> Optional[int]:
        if self.__block_number is None and self.block_hash is not None:
            self.__block_number = self.transport.get_block_number(self.block_hash)
        return self.__block_number

    def __repr__(self):
        return f'<ExtrinsicReceipt(extrinsic_hash={self.extrinsic_hash}, block_hash={self.block_hash})>'
