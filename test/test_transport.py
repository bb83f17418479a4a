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
import unittest
from unittest.mock import MagicMock

from substratebindings.bindings import BindingTable
from substratebindings.exceptions import SubstrateRequestException, ConfigurationError, BlockNotFound
from substratebindings.payload import PayloadBuilder
from substratebindings.transport import Transport, ExtrinsicReceipt, list_remove_iter
from substratebindings.utils.hasher import blake2_256
from test.fixtures import load_interface, load_metadata_v14, ALICE_PUBLIC_KEY, BOB_PUBLIC_KEY

BLOCK_HASH = '0x' + 'ab' * 32


class ListRemoveIterTestCase(unittest.TestCase):

    def test_remove_during_iteration(self):
        items = [1, 2, 3, 4]

        for item, remove in list_remove_iter(items):
            if item % 2 == 0:
                remove()

        self.assertEqual([1, 3], items)


class HTTPTransportTestCase(unittest.TestCase):

    def setUp(self):
        self.transport = Transport(url='http://127.0.0.1:9933')
        self.transport.session = MagicMock()

    def mock_response(self, json_body, status_code=200):
        self.transport.session.request.return_value = MagicMock(
            status_code=status_code, json=MagicMock(return_value=json_body)
        )

    def test_rpc_request(self):
        self.mock_response({'jsonrpc': '2.0', 'result': BLOCK_HASH, 'id': 1})

        self.assertEqual(BLOCK_HASH, self.transport.rpc_request('chain_getFinalizedHead', [])['result'])

        args, kwargs = self.transport.session.request.call_args
        self.assertEqual(('POST', 'http://127.0.0.1:9933'), args)
        self.assertEqual('chain_getFinalizedHead', json.loads(kwargs['data'])['method'])

    def test_request_ids_increment(self):
        self.mock_response({'jsonrpc': '2.0', 'result': None, 'id': 1})

        self.transport.rpc_request('chain_getHead', [])
        self.transport.rpc_request('chain_getHead', [])

        self.assertEqual(2, json.loads(self.transport.session.request.call_args[1]['data'])['id'])

    def test_rpc_error(self):
        self.mock_response({'jsonrpc': '2.0', 'error': {'code': -32601, 'message': 'Method not found'}, 'id': 1})

        with self.assertRaises(SubstrateRequestException):
            self.transport.rpc_request('unknown_method', [])

    def test_http_status(self):
        self.mock_response({}, status_code=500)

        with self.assertRaises(SubstrateRequestException):
            self.transport.rpc_request('chain_getHead', [])

    def test_result_handler_requires_websocket(self):
        with self.assertRaises(ConfigurationError):
            self.transport.rpc_request('author_submitAndWatchExtrinsic', ['0x00'], result_handler=lambda *args: None)

    def test_url_or_websocket_required(self):
        self.assertRaises(ValueError, Transport)
        self.assertRaises(ValueError, Transport, url='http://127.0.0.1:9933', websocket=MagicMock())


class WebsocketTransportTestCase(unittest.TestCase):

    def setUp(self):
        self.websocket = MagicMock()
        self.transport = Transport(websocket=self.websocket)

    def test_rpc_request(self):
        self.websocket.recv.side_effect = [
            json.dumps({'jsonrpc': '2.0', 'result': BLOCK_HASH, 'id': 1})
        ]

        self.assertEqual(BLOCK_HASH, self.transport.rpc_request('chain_getFinalizedHead', [])['result'])
        self.assertEqual('chain_getFinalizedHead', json.loads(self.websocket.send.call_args[0][0])['method'])

    def test_rpc_error(self):
        self.websocket.recv.side_effect = [
            json.dumps({'jsonrpc': '2.0', 'error': {'code': 1010, 'message': 'Invalid Transaction'}, 'id': 1})
        ]

        with self.assertRaises(SubstrateRequestException):
            self.transport.rpc_request('author_submitExtrinsic', ['0x00'])

    def test_submit_wait_for_inclusion(self):
        self.websocket.recv.side_effect = [
            json.dumps({'jsonrpc': '2.0', 'result': 'sub1', 'id': 1}),
            json.dumps({
                'jsonrpc': '2.0', 'method': 'author_extrinsicUpdate',
                'params': {'subscription': 'sub1', 'result': 'ready'}
            }),
            json.dumps({
                'jsonrpc': '2.0', 'method': 'author_extrinsicUpdate',
                'params': {'subscription': 'sub1', 'result': {'inBlock': BLOCK_HASH}}
            }),
            json.dumps({'jsonrpc': '2.0', 'result': True, 'id': 2})
        ]

        extrinsic = b'\x10\x04\x00\x00\x00'
        receipt = self.transport.submit(extrinsic, wait_for_inclusion=True)

        self.assertEqual(BLOCK_HASH, receipt.block_hash)
        self.assertFalse(receipt.finalized)
        self.assertEqual('0x' + blake2_256(extrinsic).hex(), receipt.extrinsic_hash)
        self.assertEqual('author_unwatchExtrinsic', json.loads(self.websocket.send.call_args[0][0])['method'])

    def test_submit_invalid(self):
        self.websocket.recv.side_effect = [
            json.dumps({'jsonrpc': '2.0', 'result': 'sub1', 'id': 1}),
            json.dumps({
                'jsonrpc': '2.0', 'method': 'author_extrinsicUpdate',
                'params': {'subscription': 'sub1', 'result': 'invalid'}
            }),
            json.dumps({'jsonrpc': '2.0', 'result': True, 'id': 2})
        ]

        with self.assertRaises(SubstrateRequestException) as cm:
            self.transport.submit(b'\x10\x04\x00\x00\x00', wait_for_inclusion=True)

        self.assertEqual('invalid', cm.exception.args[0]['data'])
        self.assertEqual('author_unwatchExtrinsic', json.loads(self.websocket.send.call_args[0][0])['method'])

    def test_submit_usurped(self):
        self.websocket.recv.side_effect = [
            json.dumps({'jsonrpc': '2.0', 'result': 'sub1', 'id': 1}),
            json.dumps({
                'jsonrpc': '2.0', 'method': 'author_extrinsicUpdate',
                'params': {'subscription': 'sub1', 'result': 'ready'}
            }),
            json.dumps({
                'jsonrpc': '2.0', 'method': 'author_extrinsicUpdate',
                'params': {'subscription': 'sub1', 'result': {'usurped': '0x' + 'cd' * 32}}
            }),
            json.dumps({'jsonrpc': '2.0', 'result': True, 'id': 2})
        ]

        with self.assertRaises(SubstrateRequestException):
            self.transport.submit(b'\x10\x04\x00\x00\x00', wait_for_finalization=True)

    def test_close(self):
        with self.transport:
            pass

        self.websocket.close.assert_called_once()


class TransportQueryTestCase(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.interface = load_interface()
        cls.builder = PayloadBuilder(BindingTable.generate(cls.interface, ['System', 'Balances'], ['Core']))

    def setUp(self):
        self.transport = Transport(url='http://127.0.0.1:9933')
        self.transport.interface = self.interface
        self.storage = {}

        def mocked_request(method, params, result_handler=None):
            if method == 'rpc_methods':
                return {'jsonrpc': '2.0', 'result': {'methods': ['chain_getHead', 'state_getRuntimeVersion']}, 'id': 1}
            elif method == 'chain_getHead':
                return {'jsonrpc': '2.0', 'result': BLOCK_HASH, 'id': 1}
            elif method == 'chain_getBlockHash':
                return {'jsonrpc': '2.0', 'result': BLOCK_HASH if params[0] == 1 else None, 'id': 1}
            elif method == 'chain_getHeader':
                return {'jsonrpc': '2.0', 'result': {'number': '0x67', 'parentHash': BLOCK_HASH}, 'id': 1}
            elif method == 'state_getStorage':
                return {'jsonrpc': '2.0', 'result': self.storage.get(params[0]), 'id': 1}
            elif method == 'state_getKeysPaged':
                prefix, page_size, start_key, block_hash = params
                keys = sorted(k for k in self.storage if k.startswith(prefix) and k > start_key)
                return {'jsonrpc': '2.0', 'result': keys[:page_size], 'id': 1}
            elif method == 'state_queryStorageAt':
                changes = [[key, self.storage[key]] for key in params[0]]
                return {'jsonrpc': '2.0', 'result': [{'block': params[1], 'changes': changes}], 'id': 1}
            elif method == 'state_call':
                return {'jsonrpc': '2.0', 'result': '0x0c', 'id': 1}
            elif method == 'author_submitExtrinsic':
                return {'jsonrpc': '2.0', 'result': '0x' + '01' * 32, 'id': 1}

            raise ValueError(f'Unsupported mocked method {method}')

        self.transport.rpc_request = MagicMock(side_effect=mocked_request)

    def account_key(self, public_key):
        return self.builder.query('Balances', 'Account', [f'0x{public_key}']).address.to_hex()

    def test_execute_query(self):
        payload = self.builder.query('System', 'Number')
        self.storage[payload.address.to_hex()] = '0x67000000'

        self.assertEqual(bytes.fromhex('67000000'), self.transport.execute_query(payload, BLOCK_HASH))
        self.transport.rpc_request.assert_called_with('state_getStorage', [payload.address.to_hex(), BLOCK_HASH])

    def test_execute_query_empty(self):
        self.assertIsNone(self.transport.execute_query(self.builder.query('System', 'Number')))

    def test_execute_query_iterable(self):
        with self.assertRaises(ValueError):
            self.transport.execute_query(self.builder.query('Balances', 'Account'))

    def test_execute_query_constant(self):
        payload = self.builder.constant('Balances', 'ExistentialDeposit')

        self.assertEqual(
            bytes.fromhex('00e40b54020000000000000000000000'), self.transport.execute_query(payload)
        )
        self.transport.rpc_request.assert_not_called()

    def test_execute_query_wrong_kind(self):
        with self.assertRaises(TypeError):
            self.transport.execute_query(self.builder.runtime_api_call('Core', 'version'))

    def test_execute_query_map(self):
        self.storage[self.account_key(ALICE_PUBLIC_KEY)] = '0x' + '01' * 64
        self.storage[self.account_key(BOB_PUBLIC_KEY)] = '0x' + '02' * 64
        self.storage[self.builder.query('Balances', 'TotalIssuance').address.to_hex()] = '0x' + '03' * 16

        result = self.transport.execute_query_map(self.builder.query('Balances', 'Account'), page_size=1)

        self.assertEqual(2, len(result))
        self.assertEqual(
            {
                bytes.fromhex(self.account_key(ALICE_PUBLIC_KEY)[2:]),
                bytes.fromhex(self.account_key(BOB_PUBLIC_KEY)[2:])
            },
            {key for key, _ in result}
        )
        self.assertEqual({b'\x01' * 64, b'\x02' * 64}, {value for _, value in result})

    def test_execute_query_map_max_results(self):
        self.storage[self.account_key(ALICE_PUBLIC_KEY)] = '0x' + '01' * 64
        self.storage[self.account_key(BOB_PUBLIC_KEY)] = '0x' + '02' * 64

        result = self.transport.execute_query_map(self.builder.query('Balances', 'Account'), max_results=1)

        self.assertEqual(1, len(result))

    def test_call_runtime_method(self):
        payload = self.builder.runtime_api_call('Core', 'version')

        self.assertEqual(b'\x0c', self.transport.call_runtime_method(payload, BLOCK_HASH))
        self.transport.rpc_request.assert_called_with('state_call', ['Core_version', '0x', BLOCK_HASH])

    def test_get_block_hash(self):
        self.assertEqual(BLOCK_HASH, self.transport.get_block_hash(1))
        self.assertRaises(BlockNotFound, self.transport.get_block_hash, 10**9)

    def test_get_block_number(self):
        self.assertEqual(103, self.transport.get_block_number(BLOCK_HASH))

    def test_supports_rpc_method(self):
        self.assertTrue(self.transport.supports_rpc_method('chain_getHead'))
        self.assertFalse(self.transport.supports_rpc_method('chain_getFinalisedHead'))

    def test_submit(self):
        receipt = self.transport.submit(b'\x10\x04\x00\x00\x00')

        self.assertIsInstance(receipt, ExtrinsicReceipt)
        self.assertEqual('0x' + '01' * 32, receipt.extrinsic_hash)
        self.assertIsNone(receipt.block_hash)
        self.assertIsNone(receipt.block_number)

    def test_receipt_block_number(self):
        receipt = ExtrinsicReceipt(self.transport, extrinsic_hash='0x' + '01' * 32, block_hash=BLOCK_HASH)

        self.assertEqual(103, receipt.block_number)

    def test_fetch_metadata(self):
        self.transport.get_metadata = MagicMock(return_value=load_metadata_v14())

        interface = self.transport.fetch_metadata(BLOCK_HASH)

        self.assertIn('Assets', interface.pallets)
        self.assertIs(interface, self.transport.interface)
        self.assertIs(interface, self.transport.fetch_metadata(BLOCK_HASH))
        self.transport.get_metadata.assert_called_once_with(BLOCK_HASH)


if __name__ == '__main__':
    unittest.main()
