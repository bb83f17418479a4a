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

import os

from substratebindings.metadata import InterfaceDescription
from substratebindings.utils import load_json_file

FIXTURES_PATH = os.path.dirname(__file__)

# Well known development accounts
ALICE_PUBLIC_KEY = 'd43593c715fdd31c61141abd04a99fd6822c8558854ccde39a5684e7a56da27d'
ALICE_ADDRESS = '5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY'
BOB_PUBLIC_KEY = '8eaf04151687736326c9fea17e25fc5287613693c912909cb226aa4794f26a48'
BOB_ADDRESS = '5FHneW46xGXgs5mUiveU4sbTyGBzmstUspZC92UhjJM694ty'

GENESIS_HASH = '0x91b171bb158e2d3848fa23a9f1c25182fb8e20313b2c1eb49219da7a70ce90c3'

# Secret seed of the development account Alice
ALICE_SEED = '0xe5be9a5092b81bca64be81d212e7f2f9eba183bb7a90954f7b76361f6edb5c0a'


def fixture_path(name: str) -> str:
    return os.path.join(FIXTURES_PATH, name)


def load_interface_dict() -> dict:
    return load_json_file(fixture_path('interface.json'))


def load_interface() -> InterfaceDescription:
    return InterfaceDescription.from_dict(load_interface_dict())


def load_metadata_v14() -> dict:
    return load_json_file(fixture_path('metadata_v14.json'))


def encode_account_info(nonce: int, free: int, reserved: int = 0, frozen: int = 0) -> str:
    """
    SCALE encoded frame_system::AccountInfo as stored on chain
    """
    data = nonce.to_bytes(4, 'little') + bytes(4) + (1).to_bytes(4, 'little') + bytes(4)
    for balance in (free, reserved, frozen, 0):
        data += balance.to_bytes(16, 'little')
    return f'0x{data.hex()}'


class MockedNode:
    """
    Answers the JSON-RPC requests a Transport makes, from an in-memory storage dict of hex key to hex value
    """

    def __init__(self, storage: dict = None, finalized_number: int = 1000, rpc_methods: list = None,
                 extrinsic_status=None):
        self.storage = storage or {}
        self.finalized_number = finalized_number
        self.rpc_methods = rpc_methods if rpc_methods is not None else [
            'chain_getHead', 'state_call', 'state_getRuntimeVersion'
        ]
        self.submitted = []
        self.extrinsic_status = extrinsic_status or {'inBlock': self.block_hash(finalized_number)}

    @staticmethod
    def block_hash(block_number: int) -> str:
        return '0x{:064x}'.format(block_number + 1)

    def rpc_request(self, method, params, result_handler=None):
        if method == 'rpc_methods':
            result = {'methods': self.rpc_methods}
        elif method == 'chain_getBlockHash':
            result = GENESIS_HASH if params[0] == 0 else self.block_hash(params[0])
        elif method in ('chain_getHead', 'chain_getFinalizedHead'):
            result = self.block_hash(self.finalized_number)
        elif method == 'chain_getHeader':
            result = {'number': hex(self.finalized_number)}
        elif method == 'state_getRuntimeVersion':
            result = {'specVersion': 100, 'transactionVersion': 1}
        elif method == 'state_getStorage':
            result = self.storage.get(params[0])
        elif method == 'state_getKeysPaged':
            prefix, page_size, start_key = params[0:3]
            result = sorted(k for k in self.storage if k.startswith(prefix) and k > start_key)[:page_size]
        elif method == 'state_queryStorageAt':
            result = [{'block': params[1], 'changes': [[key, self.storage[key]] for key in params[0]]}]
        elif method == 'state_call':
            result = '0x05000000'
        elif method == 'system_accountNextIndex':
            result = 7
        elif method == 'author_submitExtrinsic':
            self.submitted.append(params[0])
            result = '0x' + '01' * 32
        elif method == 'author_submitAndWatchExtrinsic':
            self.submitted.append(params[0])
            return result_handler({
                'jsonrpc': '2.0', 'method': 'author_extrinsicUpdate',
                'params': {'subscription': 'sub1', 'result': self.extrinsic_status}
            }, 0, 'sub1')
        elif method == 'author_unwatchExtrinsic':
            result = True
        else:
            raise ValueError(f'Unsupported mocked method {method}')

        return {'jsonrpc': '2.0', 'result': result, 'id': 1}
