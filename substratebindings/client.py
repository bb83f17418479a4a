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

import logging
from typing import Any, List, Optional, Sequence, Tuple, Union

from .bindings import BindingTable
from .codec import ScaleCodec
from .compatibility import CompatibilityPolicy, check_compatibility
from .descriptor import ItemKind
from .exceptions import ConfigurationError
from .extrinsic import Era, ExtrinsicAssembler, SignedExtrinsic
from .keypair import Keypair
from .payload import Payload, PayloadBuilder
from .transport import Transport, ExtrinsicReceipt
from .utils.hasher import TRANSPARENT_HASHERS

__all__ = ['SubstrateClient']

logger = logging.getLogger(__name__)


class SubstrateClient:

    def __init__(self, table: BindingTable, url: str = None, websocket=None, transport: Transport = None,
                 policy: Union[CompatibilityPolicy, str] = CompatibilityPolicy.STRICT, type_registry: dict = None,
                 type_registry_preset: str = 'legacy', ss58_format: int = None, ws_options: dict = None):
        """
        Client for the items of a binding table: checks the node against the table, then queries storage, reads
        constants, calls runtime APIs and signs and submits extrinsics.

        Parameters
        ----------
        table: BindingTable the client is generated for
        url: the URL to the substrate node, either in format https://127.0.0.1:9933 or wss://127.0.0.1:9944
        websocket: an existing websocket connection, instead of `url`
        transport: an existing Transport, instead of `url` or `websocket`
        policy: CompatibilityPolicy applied by `connect()` when the node does not match the table
        type_registry: A dict containing the custom type registry in format: {'types': {'customType': 'u32'},..}
        type_registry_preset: The name of the predefined type registry shipped with the SCALE-codec
        ss58_format: The address type which account IDs will be SS58-encoded to
        ws_options: dict of options to pass to the websocket-client create_connection function
        """
        self.codec = ScaleCodec(
            type_registry=type_registry, type_registry_preset=type_registry_preset, ss58_format=ss58_format
        )

        if transport is None:
            transport = Transport(url=url, websocket=websocket, codec=self.codec, ws_options=ws_options)

        self.transport = transport
        self.table = table

        self.config = {
            'policy': CompatibilityPolicy(policy),
            'ss58_format': ss58_format
        }

        self.builder = PayloadBuilder(table, codec=self.codec)
        self.assembler = ExtrinsicAssembler.from_interface(table.interface, codec=self.codec)

        self.compatible = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        self.transport.close()

    @staticmethod
    def debug_message(message: str):
        logger.debug(message)

    def connect(self, block_hash: str = None) -> bool:
        """
        Retrieves the metadata of the node and validates it against the binding table, applying the configured
        policy. Raises CompatibilityError on a mismatch with the STRICT policy.

        Returns
        -------
        True when the node matches the binding table
        """
        live = self.transport.fetch_metadata(block_hash)
        self.compatible = check_compatibility(live, self.table, self.config['policy'])
        return self.compatible

    def compose_call(self, pallet: str, name: str, args: Union[dict, Sequence] = None) -> Payload:
        return self.builder.call(pallet, name, args)

    def query(self, pallet: str, entry: str, keys: Sequence[Any] = None, block_hash: str = None) -> Any:
        """
        Retrieves the decoded value of a storage entry

        Parameters
        ----------
        pallet: name of the pallet, e.g. 'System'
        entry: name of the storage entry, e.g. 'Account'
        keys: all key components of the entry
        block_hash: Optional block hash, chain tip when omitted

        Returns
        -------
        Decoded value, or None when no value is stored and the entry has no default
        """
        payload = self.builder.query(pallet, entry, keys)

        data = self.transport.execute_query(payload, block_hash=block_hash)

        if data is None:
            _, entry_desc = self.table.get_storage_entry(payload.descriptor)
            if entry_desc.modifier != 'Default' or not entry_desc.default:
                return None
            data = entry_desc.default

        return self.codec.decode(payload.value_type, data)

    def query_map(self, pallet: str, entry: str, keys: Sequence[Any] = None, block_hash: str = None,
                  max_results: int = None, page_size: int = 100) -> List[Tuple[Any, Any]]:
        """
        Iterates over all values of a map storage entry below the supplied key components

        Parameters
        ----------
        pallet: name of the pallet
        entry: name of the storage entry
        keys: leading key components, fewer than the arity of the entry
        block_hash: Optional block hash, chain tip when omitted
        max_results: the maximum of results required
        page_size: The results are fetched from the node RPC in chunks of this size

        Returns
        -------
        list of (remaining key components, decoded value); the keys are the raw storage key when the entry uses
        opaque hashers
        """
        payload = self.builder.query(pallet, entry, keys)

        if not payload.address.is_iterable:
            raise ValueError(f'All keys of "{pallet}.{entry}" supplied, use query()')

        pallet_desc, entry_desc = self.table.get_storage_entry(payload.descriptor)
        key_count = len(payload.address.fragments)
        decodable = all(hasher in TRANSPARENT_HASHERS for hasher in entry_desc.hashers)

        records = self.transport.execute_query_map(
            payload, block_hash=block_hash, max_results=max_results, page_size=page_size
        )

        result = []
        for storage_key, value in records:
            if decodable:
                item_keys = self.builder.key_encoder.decode_keys(pallet_desc, entry_desc, storage_key)[key_count:]
            else:
                item_keys = f'0x{storage_key.hex()}'

            result.append((item_keys, self.codec.decode(payload.value_type, value)))

        return result

    def constant(self, pallet: str, name: str) -> Any:
        payload = self.builder.constant(pallet, name)
        return self.codec.decode(payload.value_type, self.transport.execute_query(payload))

    def runtime_call(self, api: str, method: str, args: Union[dict, Sequence] = None, block_hash: str = None) -> Any:
        """
        Calls a runtime API method, e.g. runtime_call('AccountNonceApi', 'account_nonce', [address])

        Returns
        -------
        Decoded result
        """
        payload = self.builder.runtime_api_call(api, method, args)
        return self.codec.decode(payload.value_type, self.transport.call_runtime_method(payload, block_hash))

    def get_account_nonce(self, account_address: str) -> int:
        """
        Returns current nonce for given account address, through the AccountNonceApi when part of the binding table
        """
        if ('AccountNonceApi', 'account_nonce', ItemKind.RUNTIME_METHOD) in self.table.descriptors and \
                self.transport.supports_rpc_method('state_call'):
            return self.runtime_call('AccountNonceApi', 'account_nonce', [account_address])

        return self.transport.get_account_nonce(account_address)

    def create_signed_extrinsic(self, call: Payload, keypair: Keypair, era: Union[dict, str] = None,
                                nonce: int = None, tip: int = 0, tip_asset_id: int = None) -> SignedExtrinsic:
        """
        Creates a extrinsic signed by given keypair

        Parameters
        ----------
        call: Payload of kind CALL
        keypair: Keypair used to sign the extrinsic
        era: Specify mortality in blocks in follow format: {'period': [amount_blocks]} If omitted the extrinsic is immortal
        nonce: nonce to include in extrinsics, if omitted the current nonce is retrieved on-chain
        tip: The tip for the block author to gain priority during network congestion
        tip_asset_id: Optional asset ID with which to pay the tip

        Returns
        -------
        SignedExtrinsic
        """
        if not keypair.private_key:
            raise ConfigurationError('No private key set to create signatures')

        if nonce is None:
            nonce = self.get_account_nonce(keypair.ss58_address) or 0

        genesis_hash = self.transport.get_block_hash(0)
        runtime_version = self.transport.get_runtime_version()

        if isinstance(era, dict) and 'current' not in era and 'phase' not in era:
            # Retrieve current block id
            era = dict(era, current=self.transport.get_block_number(self.transport.get_chain_finalised_head()))

        era_obj = Era.create(era)

        if era_obj.is_immortal:
            block_hash = genesis_hash
        else:
            if isinstance(era, dict) and 'current' in era:
                current = era['current']
            else:
                current = self.transport.get_block_number(self.transport.get_chain_finalised_head())
            block_hash = self.transport.get_block_hash(era_obj.birth(current))

        extensions = self.assembler.chain.encode(
            era=era_obj,
            nonce=nonce,
            tip=tip,
            asset_id=tip_asset_id,
            spec_version=runtime_version['specVersion'],
            transaction_version=runtime_version['transactionVersion'],
            genesis_hash=genesis_hash,
            block_hash=block_hash
        )

        signature = keypair.sign(self.assembler.signature_payload(call, extensions))

        return self.assembler.assemble(call, keypair.public_key, extensions, signature, keypair.crypto_type)

    def sign_and_submit(self, call: Payload, keypair: Keypair, wait_for_inclusion: bool = False,
                        wait_for_finalization: bool = False, **kwargs) -> ExtrinsicReceipt:
        extrinsic = self.create_signed_extrinsic(call, keypair, **kwargs)

        self.debug_message(f'Submitting extrinsic 0x{extrinsic.extrinsic_hash.hex()}')

        return self.transport.submit(
            extrinsic, wait_for_inclusion=wait_for_inclusion, wait_for_finalization=wait_for_finalization
        )
