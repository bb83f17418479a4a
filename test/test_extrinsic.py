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
from substratebindings.codec import ScaleCodec
from substratebindings.exceptions import ExtensionChainError
from substratebindings.extrinsic import Era, era_birth, ExtensionChain, ExtensionValue, ExtrinsicAssembler, \
    DEFAULT_SIGNED_EXTENSIONS
from substratebindings.metadata import InterfaceDescription, SignedExtensionDescription
from substratebindings.payload import PayloadBuilder
from substratebindings.utils.hasher import blake2_256
from substratebindings.utils.ss58 import account_id_bytes
from test.fixtures import load_interface, ALICE_PUBLIC_KEY, ALICE_ADDRESS, BOB_PUBLIC_KEY, GENESIS_HASH

SIGNATURE = bytes(range(64))


class EraTestCase(unittest.TestCase):

    def test_immortal(self):
        self.assertTrue(Era.create('00').is_immortal)
        self.assertTrue(Era.create(None).is_immortal)
        self.assertEqual(b'\x00', Era.create().encode())
        self.assertEqual(Era(), Era.decode(b'\x00'))

    def test_mortal_decode(self):
        self.assertEqual(Era(32768, 20000), Era.decode(bytes.fromhex('4e9c')))
        self.assertEqual(Era(64, 60), Era.decode(bytes.fromhex('c503')))
        self.assertEqual(Era(64, 40), Era.decode(bytes.fromhex('8502')))

    def test_mortal_encode(self):
        self.assertEqual(bytes.fromhex('4e9c'), Era(32768, 20000).encode())
        self.assertEqual(bytes.fromhex('c503'), Era(64, 60).encode())
        self.assertEqual(bytes.fromhex('8502'), Era.create((64, 40)).encode())

    def test_create_from_current(self):
        era = Era.create({'period': 64, 'current': 1000})

        self.assertEqual(Era(64, 40), era)
        self.assertEqual(1000, era.birth(1000))
        self.assertEqual(1000, era.birth(1010))
        self.assertEqual(1064, era.death(1010))
        self.assertEqual(1000, era_birth({'period': 64, 'current': 1000}, 1010))

    def test_create_period_rounded(self):
        self.assertEqual(64, Era.create({'period': 50, 'current': 0}).period)
        self.assertEqual(4, Era.create({'period': 1, 'current': 0}).period)
        self.assertEqual(65536, Era.create({'period': 100000, 'current': 0}).period)

    def test_create_from_phase(self):
        self.assertEqual(Era(64, 60), Era.create({'period': 64, 'phase': 60}))
        self.assertEqual(Era(64, 60), Era.create({'Mortal': (64, 60)}))

    def test_invalid(self):
        self.assertRaises(ValueError, Era.decode, bytes.fromhex('0101'))
        self.assertRaises(ValueError, Era, 64, 64)
        self.assertRaises(ValueError, Era, 63, 1)
        self.assertRaises(ValueError, Era.create, {'current': 1000})
        self.assertRaises(ValueError, Era.create, {'period': 64})
        self.assertRaises(ValueError, Era.create, 'Mortal')

    def test_immortal_lifetime(self):
        self.assertEqual(0, Era().birth(1000))
        self.assertEqual(2**64 - 1, Era().death(1000))


class ExtensionChainTestCase(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.chain = ExtensionChain.from_interface(load_interface())
        cls.params = {
            'spec_version': 100, 'transaction_version': 1, 'genesis_hash': GENESIS_HASH, 'nonce': 5, 'tip': 0
        }

    def test_identifiers(self):
        self.assertEqual(8, len(self.chain))
        self.assertEqual('CheckMortality', self.chain.identifiers[4])

    def test_encode_immortal(self):
        values = {v.identifier: v for v in self.chain.encode(**self.params)}

        self.assertEqual(ExtensionValue('CheckNonZeroSender'), values['CheckNonZeroSender'])
        self.assertEqual(bytes.fromhex('64000000'), values['CheckSpecVersion'].additional)
        self.assertEqual(bytes.fromhex('01000000'), values['CheckTxVersion'].additional)
        self.assertEqual(bytes.fromhex(GENESIS_HASH[2:]), values['CheckGenesis'].additional)
        self.assertEqual(b'\x00', values['CheckMortality'].extra)
        self.assertEqual(bytes.fromhex(GENESIS_HASH[2:]), values['CheckMortality'].additional)
        self.assertEqual(b'\x14', values['CheckNonce'].extra)
        self.assertEqual(b'', values['CheckNonce'].additional)
        self.assertEqual(b'\x00', values['ChargeTransactionPayment'].extra)

    def test_encode_order(self):
        self.assertEqual(self.chain.identifiers, [v.identifier for v in self.chain.encode(**self.params)])

    def test_encode_mortal(self):
        block_hash = '0x' + '11' * 32
        values = {
            v.identifier: v for v in
            self.chain.encode(era={'period': 64, 'current': 1000}, block_hash=block_hash, **self.params)
        }

        self.assertEqual(bytes.fromhex('8502'), values['CheckMortality'].extra)
        self.assertEqual(bytes.fromhex('11' * 32), values['CheckMortality'].additional)

    def test_mortal_requires_block_hash(self):
        with self.assertRaises(ExtensionChainError):
            self.chain.encode(era={'period': 64, 'current': 1000}, **self.params)

    def test_missing_nonce(self):
        params = dict(self.params)
        del params['nonce']

        with self.assertRaises(ExtensionChainError):
            self.chain.encode(**params)

    def test_tip_default(self):
        params = dict(self.params)
        del params['tip']

        self.assertEqual(self.chain.encode(**self.params), self.chain.encode(**params))

    def test_invalid_parameter(self):
        with self.assertRaises(ExtensionChainError):
            self.chain.encode(**dict(self.params, spec_version=-1))

    def test_unknown_extension(self):
        chain = ExtensionChain([
            SignedExtensionDescription('CheckSpecVersion', additional_type='u32'),
            SignedExtensionDescription('PrevalidateAttests')
        ])
        values = chain.encode(spec_version=100)

        self.assertEqual(ExtensionValue('PrevalidateAttests'), values[1])

        chain = ExtensionChain([SignedExtensionDescription('CheckVestedTransfer', extra_type='u32')])

        with self.assertRaises(ExtensionChainError):
            chain.encode()

    def test_asset_tip(self):
        chain = ExtensionChain([SignedExtensionDescription('ChargeAssetTxPayment', extra_type='AssetTxPaymentTip')])

        self.assertEqual(b'\x04\x00', chain.encode(tip=1)[0].extra)
        self.assertEqual(b'\x04\x01\x02\x00\x00\x00', chain.encode(tip=1, asset_id=2)[0].extra)

    def test_default_chain(self):
        default_identifiers = [d.identifier for d in DEFAULT_SIGNED_EXTENSIONS]

        self.assertEqual(default_identifiers, ExtensionChain().identifiers)
        self.assertEqual(default_identifiers, ExtensionChain(()).identifiers)
        self.assertEqual(default_identifiers, ExtensionChain.from_interface(InterfaceDescription()).identifiers)
        self.assertIn('CheckNonce', default_identifiers)


class ExtrinsicAssemblerTestCase(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        interface = load_interface()
        codec = ScaleCodec()
        table = BindingTable.generate(interface, ['System', 'Balances'])

        cls.builder = PayloadBuilder(table, codec)
        cls.assembler = ExtrinsicAssembler.from_interface(interface, codec)
        cls.chain = cls.assembler.chain
        cls.call = cls.builder.call('Balances', 'transfer', {'dest': {'Id': f'0x{BOB_PUBLIC_KEY}'}, 'value': 100})
        cls.extensions = cls.chain.encode(
            spec_version=100, transaction_version=1, genesis_hash=GENESIS_HASH, nonce=5, tip=0
        )

    def test_signature_payload(self):
        payload = self.assembler.signature_payload(self.call, self.extensions)

        self.assertEqual(
            self.call.data + b'\x00\x14\x00' + bytes.fromhex('64000000') + bytes.fromhex('01000000') +
            bytes.fromhex(GENESIS_HASH[2:]) * 2,
            payload
        )

    def test_signature_payload_hashed(self):
        call = self.builder.call('System', 'remark', {'remark': '0x' + '01' * 300})
        payload = self.assembler.signature_payload(call, self.extensions)

        full_payload = call.data + b''.join(e.extra for e in self.extensions) + \
            b''.join(e.additional for e in self.extensions)

        self.assertGreater(len(full_payload), 256)
        self.assertEqual(blake2_256(full_payload), payload)

    def test_assemble(self):
        extrinsic = self.assembler.assemble(self.call, ALICE_ADDRESS, self.extensions, SIGNATURE, crypto_type=1)

        body = b'\x84' + b'\x00' + bytes.fromhex(ALICE_PUBLIC_KEY) + b'\x01' + SIGNATURE + \
            b'\x00\x14\x00' + self.call.data

        self.assertEqual(139, len(body))
        self.assertEqual(bytes.fromhex('2d02') + body, extrinsic.data)
        self.assertEqual(bytes.fromhex(ALICE_PUBLIC_KEY), extrinsic.sender)
        self.assertEqual(blake2_256(extrinsic.data), extrinsic.extrinsic_hash)
        self.assertEqual(f'0x{extrinsic.data.hex()}', extrinsic.to_hex())

    def test_assemble_multi_signature(self):
        signature = b'\x01' + SIGNATURE

        self.assertEqual(
            self.assembler.assemble(self.call, ALICE_ADDRESS, self.extensions, SIGNATURE, crypto_type=1),
            self.assembler.assemble(self.call, f'0x{ALICE_PUBLIC_KEY}', self.extensions, signature.hex())
        )

    def test_assemble_signature_without_crypto_type(self):
        with self.assertRaises(ValueError):
            self.assembler.assemble(self.call, ALICE_ADDRESS, self.extensions, SIGNATURE)

        with self.assertRaises(ValueError):
            self.assembler.assemble(self.call, ALICE_ADDRESS, self.extensions, SIGNATURE[:32], crypto_type=1)

    def test_extension_order_matters(self):
        assembler = ExtrinsicAssembler(self.assembler.codec)
        reordered = list(reversed(self.extensions))

        self.assertNotEqual(
            assembler.signature_payload(self.call, self.extensions),
            assembler.signature_payload(self.call, reordered)
        )

        with self.assertRaises(ExtensionChainError):
            self.assembler.signature_payload(self.call, reordered)

        with self.assertRaises(ExtensionChainError):
            self.assembler.assemble(self.call, ALICE_ADDRESS, reordered, SIGNATURE, crypto_type=1)

    def test_extension_count(self):
        with self.assertRaises(ExtensionChainError):
            self.assembler.signature_payload(self.call, self.extensions[:-1])

    def test_call_kind_required(self):
        query = PayloadBuilder(self.builder.table).query('System', 'Number')

        with self.assertRaises(TypeError):
            self.assembler.signature_payload(query, self.extensions)

    def test_assemble_unsigned(self):
        call = self.builder.call('System', 'remark', {'remark': '0x1234'})

        self.assertEqual(bytes.fromhex('18040000081234'), self.assembler.assemble_unsigned(call))

    def test_unsupported_version(self):
        with self.assertRaises(NotImplementedError):
            ExtrinsicAssembler(extrinsic_version=5)

    def test_account_id_bytes(self):
        self.assertEqual(bytes.fromhex(ALICE_PUBLIC_KEY), account_id_bytes(ALICE_ADDRESS))
        self.assertRaises(ValueError, account_id_bytes, '0x1234')


if __name__ == '__main__':
    unittest.main()
