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

import unittest

from substratebindings.bindings import BindingTable
from substratebindings.descriptor import ItemDescriptor, ItemKind
from substratebindings.exceptions import EncodingError, ItemNotFound, ArityError
from substratebindings.payload import PayloadBuilder, PayloadKind
from substratebindings.utils.hasher import blake2_256
from test.fixtures import load_interface, ALICE_PUBLIC_KEY, BOB_PUBLIC_KEY


class PayloadBuilderTestCase(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.table = BindingTable.generate(
            load_interface(), ['System', 'Balances', 'Assets'], ['AccountNonceApi', 'Core']
        )
        cls.builder = PayloadBuilder(cls.table)

    def test_call_data(self):
        payload = self.builder.call('Balances', 'transfer', {'dest': {'Id': f'0x{BOB_PUBLIC_KEY}'}, 'value': 100})

        self.assertEqual(PayloadKind.CALL, payload.kind)
        self.assertEqual(bytes.fromhex(f'0a0000{BOB_PUBLIC_KEY}9101'), payload.data)
        self.assertEqual(self.table.get('Balances', 'transfer', ItemKind.CALL).digest, payload.digest)
        self.assertEqual(blake2_256(payload.data), payload.call_hash)
        self.assertIsNone(payload.address)

    def test_call_positional_args(self):
        self.assertEqual(
            self.builder.call('Balances', 'transfer_keep_alive', {'dest': {'Id': f'0x{BOB_PUBLIC_KEY}'}, 'value': 1}),
            self.builder.call('Balances', 'transfer_keep_alive', [{'Id': f'0x{BOB_PUBLIC_KEY}'}, 1])
        )

    def test_call_deterministic(self):
        args = {'id': 1, 'target': {'Id': f'0x{ALICE_PUBLIC_KEY}'}, 'amount': 10**12}

        self.assertEqual(
            self.builder.call('Assets', 'transfer', args),
            self.builder.call('Assets', 'transfer', dict(reversed(list(args.items()))))
        )

    def test_argument_locality(self):
        dest = {'Id': f'0x{BOB_PUBLIC_KEY}'}
        payload_100 = self.builder.call('Balances', 'transfer', {'dest': dest, 'value': 100})
        payload_101 = self.builder.call('Balances', 'transfer', {'dest': dest, 'value': 101})

        self.assertNotEqual(payload_100.data, payload_101.data)
        self.assertEqual(b'\x0a\x00', payload_101.data[:2])
        # Index bytes and the encoded destination are shared, only the value differs
        self.assertEqual(payload_100.data[:35], payload_101.data[:35])
        self.assertEqual(bytes.fromhex('9501'), payload_101.data[35:])

    def test_call_not_in_table(self):
        with self.assertRaises(ItemNotFound):
            self.builder.call('Balances', 'force_transfer', {})

    def test_call_foreign_descriptor(self):
        descriptor = ItemDescriptor('Balances', 'transfer', ItemKind.CALL, b'\x01' * 32)

        with self.assertRaises(ItemNotFound):
            self.builder.build_call(descriptor, {'dest': {'Id': f'0x{BOB_PUBLIC_KEY}'}, 'value': 1})

    def test_call_wrong_kind(self):
        descriptor = self.table.get('System', 'Number', ItemKind.STORAGE)

        with self.assertRaises(ValueError):
            self.builder.build_call(descriptor)

    def test_missing_argument(self):
        with self.assertRaises(EncodingError):
            self.builder.call('Balances', 'transfer', {'dest': {'Id': f'0x{BOB_PUBLIC_KEY}'}})

    def test_unknown_argument(self):
        with self.assertRaises(EncodingError):
            self.builder.call(
                'Balances', 'transfer', {'dest': {'Id': f'0x{BOB_PUBLIC_KEY}'}, 'value': 1, 'keep_alive': True}
            )

    def test_argument_count(self):
        with self.assertRaises(EncodingError):
            self.builder.call('Balances', 'transfer', [{'Id': f'0x{BOB_PUBLIC_KEY}'}])

    def test_invalid_argument_value(self):
        with self.assertRaises(EncodingError):
            self.builder.call('Balances', 'transfer', {'dest': {'Id': f'0x{BOB_PUBLIC_KEY}'}, 'value': -1})

    def test_query_exact(self):
        payload = self.builder.query('Balances', 'Account', [f'0x{ALICE_PUBLIC_KEY}'])

        self.assertEqual(PayloadKind.QUERY, payload.kind)
        self.assertTrue(payload.address.is_exact)
        self.assertEqual(payload.address.data, payload.data)
        self.assertEqual('pallet_balances::AccountData', payload.value_type)
        self.assertIsNone(payload.call_hash)

    def test_query_iterable(self):
        exact = self.builder.query('Balances', 'Account', [f'0x{ALICE_PUBLIC_KEY}'])
        iterable = self.builder.query('Balances', 'Account')

        self.assertTrue(iterable.address.is_iterable)
        self.assertTrue(iterable.address.is_prefix_of(exact.address))
        self.assertEqual(exact.descriptor, iterable.descriptor)

    def test_query_plain(self):
        payload = self.builder.query('System', 'Number')

        self.assertTrue(payload.address.is_exact)
        self.assertEqual('u32', payload.value_type)

    def test_query_arity(self):
        with self.assertRaises(ArityError):
            self.builder.query('System', 'Number', [1])

    def test_query_address_of_other_entry(self):
        address = self.builder.storage_address('System', 'Account', [f'0x{ALICE_PUBLIC_KEY}'])

        with self.assertRaises(ValueError):
            self.builder.build_query(self.table.get('Balances', 'Account', ItemKind.STORAGE), address)

    def test_constant(self):
        payload = self.builder.constant('Balances', 'ExistentialDeposit')

        self.assertEqual(PayloadKind.CONSTANT, payload.kind)
        self.assertEqual('u128', payload.value_type)
        self.assertEqual(b'', payload.data)

    def test_runtime_api_call(self):
        payload = self.builder.runtime_api_call(
            'AccountNonceApi', 'account_nonce', {'account': f'0x{ALICE_PUBLIC_KEY}'}
        )

        self.assertEqual(PayloadKind.RUNTIME_API_CALL, payload.kind)
        self.assertEqual(bytes.fromhex(ALICE_PUBLIC_KEY), payload.data)
        self.assertEqual('AccountNonceApi_account_nonce', payload.rpc_method_name)
        self.assertEqual('u32', payload.value_type)

    def test_runtime_api_call_without_inputs(self):
        payload = self.builder.runtime_api_call('Core', 'version')

        self.assertEqual(b'', payload.data)
        self.assertEqual('Core_version', payload.rpc_method_name)

    def test_runtime_api_call_missing_input(self):
        with self.assertRaises(EncodingError):
            self.builder.runtime_api_call('AccountNonceApi', 'account_nonce', {})


if __name__ == '__main__':
    unittest.main()
