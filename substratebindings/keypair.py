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

from typing import Union, Optional

from bip39 import bip39_to_mini_secret, bip39_generate, bip39_validate
import sr25519
import ed25519_zebra

from .constants import DEFAULT_SS58_FORMAT
from .exceptions import ConfigurationError
from .utils.ss58 import ss58_encode, ss58_decode

__all__ = ['Keypair', 'KeypairType']


class KeypairType:
    """
    Type of cryptography of a `Keypair`, equal to the variant index of the signature in a MultiSignature

    * ED25519 = 0
    * SR25519 = 1

    """
    ED25519 = 0
    SR25519 = 1


class Keypair:

    def __init__(self, ss58_address: str = None, public_key: Union[bytes, str] = None,
                 private_key: Union[bytes, str] = None, ss58_format: int = None, seed_hex: Union[str, bytes] = None,
                 crypto_type: int = KeypairType.SR25519):
        """
        Signer holding a public/private key pair. Signs the signature payloads produced by the extrinsic assembler.

        Parameters
        ----------
        ss58_address: Substrate address
        public_key: hex string or bytes of public_key key
        private_key: hex string or bytes of private key
        ss58_format: Substrate address format, default to 42 when omitted
        seed_hex: hex string of seed
        crypto_type: Use KeypairType.SR25519 or KeypairType.ED25519 cryptography for generating the Keypair
        """
        if crypto_type not in (KeypairType.SR25519, KeypairType.ED25519):
            raise ValueError('crypto_type "{}" not supported'.format(crypto_type))

        self.crypto_type = crypto_type
        self.seed_hex = seed_hex

        if ss58_address and not public_key:
            public_key = ss58_decode(ss58_address, valid_ss58_format=ss58_format)

        if private_key:

            if type(private_key) is str:
                private_key = bytes.fromhex(private_key.replace('0x', ''))

            if self.crypto_type == KeypairType.SR25519:
                if len(private_key) != 64:
                    raise ValueError('Secret key should be 64 bytes long')
                if not public_key:
                    public_key = sr25519.public_from_secret_key(private_key)

        if not public_key:
            raise ValueError('No SS58 formatted address or public key provided')

        if type(public_key) is str:
            public_key = bytes.fromhex(public_key.replace('0x', ''))

        if len(public_key) != 32:
            raise ValueError('Public key should be 32 bytes long')

        if ss58_format is None:
            ss58_format = DEFAULT_SS58_FORMAT

        if not ss58_address:
            ss58_address = ss58_encode(public_key, ss58_format=ss58_format)

        self.ss58_format: int = ss58_format

        self.public_key: bytes = public_key

        self.ss58_address: str = ss58_address

        self.private_key: bytes = private_key

        self.mnemonic = None

    @classmethod
    def generate_mnemonic(cls, words: int = 12) -> str:
        """
        Generates a new seed phrase with given amount of words (default 12)
        """
        return bip39_generate(words, 'en')

    @classmethod
    def validate_mnemonic(cls, mnemonic: str) -> bool:
        return bip39_validate(mnemonic, 'en')

    @classmethod
    def create_from_mnemonic(cls, mnemonic: str, ss58_format=DEFAULT_SS58_FORMAT,
                             crypto_type=KeypairType.SR25519) -> 'Keypair':
        """
        Create a Keypair for given memonic

        Parameters
        ----------
        mnemonic: Seed phrase
        ss58_format: Substrate address format
        crypto_type: Use `KeypairType.SR25519` or `KeypairType.ED25519` cryptography for generating the Keypair

        Returns
        -------
        Keypair
        """
        seed_array = bip39_to_mini_secret(mnemonic, "", 'en')

        keypair = cls.create_from_seed(
            seed_hex=bytes(seed_array),
            ss58_format=ss58_format,
            crypto_type=crypto_type
        )

        keypair.mnemonic = mnemonic

        return keypair

    @classmethod
    def create_from_seed(
            cls, seed_hex: Union[bytes, str], ss58_format: Optional[int] = DEFAULT_SS58_FORMAT,
            crypto_type=KeypairType.SR25519
    ) -> 'Keypair':
        """
        Create a Keypair for given 32 bytes seed

        Parameters
        ----------
        seed_hex: hex string or bytes of seed
        ss58_format: Substrate address format
        crypto_type: Use KeypairType.SR25519 or KeypairType.ED25519 cryptography for generating the Keypair

        Returns
        -------
        Keypair
        """

        if type(seed_hex) is str:
            seed_hex = bytes.fromhex(seed_hex.replace('0x', ''))

        if len(seed_hex) != 32:
            raise ValueError('Seed should be 32 bytes long')

        if crypto_type == KeypairType.SR25519:
            public_key, private_key = sr25519.pair_from_seed(seed_hex)
        elif crypto_type == KeypairType.ED25519:
            private_key, public_key = ed25519_zebra.ed_from_seed(seed_hex)
        else:
            raise ValueError('crypto_type "{}" not supported'.format(crypto_type))

        return cls(
            public_key=public_key, private_key=private_key, ss58_format=ss58_format, crypto_type=crypto_type,
            seed_hex=seed_hex
        )

    @classmethod
    def create_from_secret(cls, secret: str, ss58_format: Optional[int] = DEFAULT_SS58_FORMAT,
                           crypto_type=KeypairType.SR25519) -> 'Keypair':
        """
        Creates a Keypair from either a '0x' prefixed hex seed or a mnemonic
        """
        secret = secret.strip()

        if secret[0:2] == '0x':
            return cls.create_from_seed(secret, ss58_format=ss58_format, crypto_type=crypto_type)

        if not cls.validate_mnemonic(secret):
            raise ValueError('Secret is neither a hex seed nor a valid mnemonic')

        return cls.create_from_mnemonic(secret, ss58_format=ss58_format, crypto_type=crypto_type)

    @classmethod
    def create_from_private_key(
            cls, private_key: Union[bytes, str], public_key: Union[bytes, str] = None, ss58_address: str = None,
            ss58_format: int = None, crypto_type: int = KeypairType.SR25519
    ) -> 'Keypair':
        return cls(
            ss58_address=ss58_address, public_key=public_key, private_key=private_key,
            ss58_format=ss58_format, crypto_type=crypto_type
        )

    @staticmethod
    def _data_bytes(data: Union[bytes, str]) -> bytes:
        if type(data) is str:
            if data[0:2] == '0x':
                return bytes.fromhex(data[2:])
            return data.encode()
        return bytes(data)

    def sign(self, data: Union[bytes, str]) -> bytes:
        """
        Creates a signature for given data

        Parameters
        ----------
        data: data to sign in bytes or hex string format

        Returns
        -------
        signature in bytes

        """
        data = self._data_bytes(data)

        if not self.private_key:
            raise ConfigurationError('No private key set to create signatures')

        if self.crypto_type == KeypairType.SR25519:
            signature = sr25519.sign((self.public_key, self.private_key), data)

        elif self.crypto_type == KeypairType.ED25519:
            signature = ed25519_zebra.ed_sign(self.private_key, data)

        else:
            raise ConfigurationError("Crypto type not supported")

        return signature

    def verify(self, data: Union[bytes, str], signature: Union[bytes, str]) -> bool:
        """
        Verifies data with specified signature

        Parameters
        ----------
        data: data to be verified in bytes or hex string format
        signature: signature in bytes or hex string format

        Returns
        -------
        True if data is signed with this Keypair, otherwise False
        """
        data = self._data_bytes(data)

        if type(signature) is str and signature[0:2] == '0x':
            signature = bytes.fromhex(signature[2:])

        if type(signature) is not bytes:
            raise TypeError("Signature should be of type bytes or a hex-string")

        if self.crypto_type == KeypairType.SR25519:
            return sr25519.verify(signature, data, self.public_key)
        elif self.crypto_type == KeypairType.ED25519:
            return ed25519_zebra.ed_verify(signature, data, self.public_key)
        else:
            raise ConfigurationError("Crypto type not supported")

    def __repr__(self):
        return '<Keypair (address={})>'.format(self.ss58_address)
