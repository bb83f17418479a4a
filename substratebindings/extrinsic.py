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

""" Assembly of submittable extrinsics from call payloads, the signed extension chain and externally produced
    signatures
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple, Union

from .codec import ScaleCodec, EMPTY_TYPES
from .constants import (
    BIT_SIGNED, BIT_UNSIGNED, DEFAULT_EXTRINSIC_VERSION, DEFAULT_ADDRESS_TYPE, DEFAULT_SIGNATURE_TYPE,
    MAX_SIGNATURE_PAYLOAD_LENGTH
)
from .exceptions import ExtensionChainError, EncodingError
from .metadata import InterfaceDescription, SignedExtensionDescription
from .payload import Payload, PayloadKind
from .utils.hasher import blake2_256
from .utils.ss58 import account_id_bytes

__all__ = [
    'Era', 'era_birth', 'ExtensionValue', 'ExtensionChain', 'SignedExtrinsic', 'ExtrinsicAssembler',
    'DEFAULT_SIGNED_EXTENSIONS'
]

logger = logging.getLogger(__name__)


def trailing_zeros(value: int) -> int:
    return (value & -value).bit_length() - 1


def next_power_of_two(value: int) -> int:
    if value < 0:
        raise ValueError("Negative integers not supported")
    return 1 if value == 0 else 1 << (value - 1).bit_length()


@dataclass(frozen=True)
class Era:
    """
    Mortality of an extrinsic. An immortal era has no period, a mortal era is valid for `period` blocks starting at
    the block where `block_number % period == phase`.
    """
    period: Optional[int] = None
    phase: Optional[int] = None

    @classmethod
    def create(cls, value: Union[None, str, dict, tuple, 'Era'] = None) -> 'Era':
        """
        Creates an Era from '00' or None (immortal), a dict {'period': 64, 'current': 1400} or {'period': 64,
        'phase': 56}, or a (period, phase) tuple
        """
        if isinstance(value, Era):
            return value

        if value in (None, '00', 'Immortal'):
            return cls()

        if isinstance(value, dict):
            if 'Mortal' in value:
                return cls.create(value['Mortal'])

            if 'period' not in value:
                raise ValueError("The era dict must contain a 'period' element")

            if 'phase' in value:
                return cls(value['period'], value['phase'])

            if 'current' not in value:
                raise ValueError('The era dict must contain either "current" or "phase" element to encode a valid era')

            # Period must be a power of two between 4 and 2**16
            period = max(4, min(1 << 16, next_power_of_two(value['period'])))
            quantize_factor = max(1, period >> 12)
            phase = (value['current'] % period) // quantize_factor * quantize_factor

            return cls(period, phase)

        if isinstance(value, (tuple, list)) and len(value) == 2:
            return cls(value[0], value[1])

        raise ValueError(f'Incorrect value for Era: {value!r}')

    def __post_init__(self):
        if self.is_immortal:
            return

        if not isinstance(self.period, int) or not isinstance(self.phase, int):
            raise ValueError("Phase and period must be ints")
        if self.period < 4 or self.period & (self.period - 1) != 0:
            raise ValueError(f"Period {self.period} is not a power of two of at least 4")
        if self.phase >= self.period:
            raise ValueError("Phase must be less than period")

    @property
    def is_immortal(self) -> bool:
        return self.period is None or self.phase is None

    def encode(self) -> bytes:
        if self.is_immortal:
            return b'\x00'

        quantize_factor = max(self.period >> 12, 1)
        encoded = min(15, max(1, trailing_zeros(self.period) - 1)) | ((self.phase // quantize_factor) << 4)
        return encoded.to_bytes(length=2, byteorder='little', signed=False)

    @classmethod
    def decode(cls, data: bytes) -> 'Era':
        if data[0:1] == b'\x00':
            return cls()

        if len(data) < 2:
            raise ValueError('Mortal era should be 2 bytes')

        encoded = int.from_bytes(data[0:2], byteorder='little')
        period = 2 << (encoded % (1 << 4))
        quantize_factor = max(1, period >> 12)
        phase = (encoded >> 4) * quantize_factor

        return cls(period, phase)

    def birth(self, current: int) -> int:
        """
        Block number of the start of the era, with `current` as reference block number. Its hash is the
        `block_hash` signed by a mortal extrinsic.
        """
        if self.is_immortal:
            return 0
        return (max(current, self.phase) - self.phase) // self.period * self.period + self.phase

    def death(self, current: int) -> int:
        """
        Block number of the first block at which the era has ended, 2**64 - 1 for immortal eras
        """
        if self.is_immortal:
            return 2**64 - 1
        return self.birth(current) + self.period


def era_birth(era, current: int) -> int:
    return Era.create(era).birth(current)


@dataclass(frozen=True)
class ExtensionValue:
    """
    Encoded parameters of one signed extension: `extra` goes into the extrinsic and the signature payload,
    `additional` only into the signature payload
    """
    identifier: str
    extra: bytes = b''
    additional: bytes = b''


# Names of the parameters feeding the (extra, additional) part of known signed extensions
EXTENSION_PARAMS = {
    'CheckNonZeroSender': (None, None),
    'CheckSpecVersion': (None, 'spec_version'),
    'CheckTxVersion': (None, 'transaction_version'),
    'CheckGenesis': (None, 'genesis_hash'),
    'CheckMortality': ('era', 'block_hash'),
    'CheckEra': ('era', 'block_hash'),
    'CheckNonce': ('nonce', None),
    'CheckWeight': (None, None),
    'ChargeTransactionPayment': ('tip', None),
    'ChargeAssetTxPayment': ('asset_tip', None),
    'CheckMetadataHash': ('mode', 'metadata_hash')
}

EXTENSION_TYPE_DEFINITIONS = {
    'AssetTxPaymentTip': {
        'type': 'struct',
        'type_mapping': [['tip', 'Compact<u128>'], ['asset_id', 'Option<u32>']]
    }
}

DEFAULT_SIGNED_EXTENSIONS = (
    SignedExtensionDescription('CheckNonZeroSender'),
    SignedExtensionDescription('CheckSpecVersion', additional_type='u32'),
    SignedExtensionDescription('CheckTxVersion', additional_type='u32'),
    SignedExtensionDescription('CheckGenesis', additional_type='H256'),
    SignedExtensionDescription('CheckMortality', extra_type='Era', additional_type='H256'),
    SignedExtensionDescription('CheckNonce', extra_type='Compact<u32>'),
    SignedExtensionDescription('CheckWeight'),
    SignedExtensionDescription('ChargeTransactionPayment', extra_type='Compact<u128>'),
)

# Parameters that can be omitted
_PARAM_DEFAULTS = {
    'tip': 0,
    'asset_id': None,
    'metadata_hash': None
}


class ExtensionChain:

    def __init__(self, descriptions: Sequence[SignedExtensionDescription] = None, codec: ScaleCodec = None):
        """
        The ordered chain of signed extensions a runtime declares

        Parameters
        ----------
        descriptions: SignedExtensionDescription in declared order, DEFAULT_SIGNED_EXTENSIONS when empty or omitted
        codec: ScaleCodec used to encode the extension parameters
        """
        if not descriptions:
            descriptions = DEFAULT_SIGNED_EXTENSIONS

        self.descriptions = tuple(descriptions)
        self.codec = codec or ScaleCodec()
        self.codec.update_type_registry_types(EXTENSION_TYPE_DEFINITIONS)

    @classmethod
    def from_interface(cls, interface: InterfaceDescription, codec: ScaleCodec = None) -> 'ExtensionChain':
        return cls(interface.signed_extensions, codec=codec)

    @property
    def identifiers(self) -> List[str]:
        return [d.identifier for d in self.descriptions]

    def __len__(self):
        return len(self.descriptions)

    def _param_value(self, param: str, params: dict, era: Era, type_string: str) -> Any:
        if param == 'asset_tip':
            return {'tip': params.get('tip', 0), 'asset_id': params.get('asset_id')}

        if param == 'mode':
            return params.get('mode', 0 if type_string == 'u8' else 'Disabled')

        if param == 'block_hash' and params.get('block_hash') is None and era.is_immortal:
            # Immortal extrinsics are checkpointed at the genesis block
            param = 'genesis_hash'

        if params.get(param) is not None:
            return params[param]

        if param in _PARAM_DEFAULTS:
            return _PARAM_DEFAULTS[param]

        raise ExtensionChainError(f'Parameter "{param}" required by signed extension chain is missing')

    def _encode_part(self, identifier: str, type_string: str, param: Optional[str], params: dict, era: Era) -> bytes:
        if type_string in EMPTY_TYPES:
            return b''

        if param is None:
            raise ExtensionChainError(f'Signed extension "{identifier}" with type "{type_string}" not supported')

        if param == 'era':
            return era.encode()

        try:
            return self.codec.encode(type_string, self._param_value(param, params, era, type_string))
        except EncodingError as e:
            raise ExtensionChainError(f'Signed extension "{identifier}": {e}') from e

    def encode(self, **params) -> List[ExtensionValue]:
        """
        Encodes the parameters of all signed extensions in declared order

        Parameters
        ----------
        params: era, nonce, tip, asset_id, spec_version, transaction_version, genesis_hash, block_hash, mode,
            metadata_hash

        Returns
        -------
        list of ExtensionValue
        """
        era = Era.create(params.get('era'))

        values = []

        for description in self.descriptions:
            extra_param, additional_param = EXTENSION_PARAMS.get(description.identifier, (None, None))

            values.append(ExtensionValue(
                identifier=description.identifier,
                extra=self._encode_part(description.identifier, description.extra_type, extra_param, params, era),
                additional=self._encode_part(
                    description.identifier, description.additional_type, additional_param, params, era
                )
            ))

        return values


@dataclass(frozen=True)
class SignedExtrinsic:
    call: Payload
    sender: bytes
    extensions: Tuple[ExtensionValue, ...]
    signature: bytes
    data: bytes = field(repr=False)

    @property
    def extrinsic_hash(self) -> bytes:
        return blake2_256(self.data)

    def to_hex(self) -> str:
        return f'0x{self.data.hex()}'


class ExtrinsicAssembler:

    def __init__(self, codec: ScaleCodec = None, address_type: str = DEFAULT_ADDRESS_TYPE,
                 signature_type: str = DEFAULT_SIGNATURE_TYPE, chain: ExtensionChain = None,
                 extrinsic_version: int = DEFAULT_EXTRINSIC_VERSION):
        """
        Turns call payloads into submittable extrinsic bytes. Signatures are not computed here but supplied by an
        external signer over the output of `signature_payload()`.

        Parameters
        ----------
        codec: ScaleCodec
        address_type: type of the sender address, 'MultiAddress' prefixes the account ID with the Id variant
        signature_type: type of the signature, 'MultiSignature' prefixes the signature with the crypto type
        chain: declared ExtensionChain, when supplied extension values are checked against it
        extrinsic_version: version of the extrinsic format
        """
        if extrinsic_version != DEFAULT_EXTRINSIC_VERSION:
            raise NotImplementedError(f"Extrinsic version {extrinsic_version} not supported")

        self.codec = codec or ScaleCodec()
        self.address_type = address_type
        self.signature_type = signature_type
        self.chain = chain
        self.extrinsic_version = extrinsic_version

    @classmethod
    def from_interface(cls, interface: InterfaceDescription, codec: ScaleCodec = None) -> 'ExtrinsicAssembler':
        codec = codec or ScaleCodec()
        return cls(
            codec=codec,
            address_type=interface.address_type,
            signature_type=interface.signature_type,
            chain=ExtensionChain.from_interface(interface, codec=codec),
            extrinsic_version=interface.extrinsic_version
        )

    @staticmethod
    def _check_call(call: Payload):
        if not isinstance(call, Payload) or call.kind is not PayloadKind.CALL:
            raise TypeError("'call' must be a Payload of kind Call")

    def check_extensions(self, extensions: Sequence[ExtensionValue]):
        """
        Basic shape checks of extension values against the declared chain: same count, same order
        """
        if self.chain is None:
            return

        identifiers = [e.identifier for e in extensions]

        if len(identifiers) != len(self.chain):
            raise ExtensionChainError(
                f'Signed extension chain has {len(self.chain)} elements, {len(identifiers)} supplied'
            )

        if identifiers != self.chain.identifiers:
            raise ExtensionChainError(
                f'Signed extensions {identifiers} do not match declared order {self.chain.identifiers}'
            )

    def signature_payload(self, call: Payload, extensions: Sequence[ExtensionValue]) -> bytes:
        """
        The bytes an external signer signs: call data, the extra part of all extensions and the additional part
        of all extensions, in declared order. Payloads longer than 256 bytes are replaced by their Blake2-256 hash.

        Parameters
        ----------
        call: Payload of kind CALL
        extensions: list of ExtensionValue

        Returns
        -------
        bytes
        """
        self._check_call(call)
        self.check_extensions(extensions)

        signature_payload = call.data + \
            b''.join(e.extra for e in extensions) + \
            b''.join(e.additional for e in extensions)

        if len(signature_payload) > MAX_SIGNATURE_PAYLOAD_LENGTH:
            return blake2_256(signature_payload)

        return signature_payload

    def encode_address(self, sender: Union[str, bytes]) -> bytes:
        account_id = account_id_bytes(sender)

        if self.address_type == 'MultiAddress':
            # MultiAddress::Id
            return b'\x00' + account_id

        return account_id

    def encode_signature(self, signature: Union[str, bytes], crypto_type: int = None) -> bytes:

        if isinstance(signature, str):
            signature = bytes.fromhex(signature.replace('0x', ''))

        if self.signature_type != 'MultiSignature':
            return signature

        # Signature already contains the MultiSignature variant
        if len(signature) == 65:
            return signature

        if len(signature) != 64:
            raise ValueError(f'Signature should be 64 bytes long, {len(signature)} supplied')

        if crypto_type is None:
            raise ValueError('Crypto type of signature required for MultiSignature')

        return bytes([crypto_type]) + signature

    def assemble(self, call: Payload, sender: Union[str, bytes], extensions: Sequence[ExtensionValue],
                 signature: Union[str, bytes], crypto_type: int = None) -> SignedExtrinsic:
        """
        Encodes the signed extrinsic: length prefix, version byte, sender address, signature, the extra part of
        all extensions in order and the call data

        Parameters
        ----------
        call: Payload of kind CALL
        sender: account ID of the signer as SS58 address, hex string or bytes
        extensions: list of ExtensionValue, the same as used for the signature payload
        signature: signature over `signature_payload()`
        crypto_type: KeypairType of the signer (0 Ed25519, 1 Sr25519, 2 Ecdsa)

        Returns
        -------
        SignedExtrinsic
        """
        self._check_call(call)
        self.check_extensions(extensions)

        sender = account_id_bytes(sender)
        signature_data = self.encode_signature(signature, crypto_type)

        body = bytes([BIT_SIGNED | self.extrinsic_version]) + \
            self.encode_address(sender) + \
            signature_data + \
            b''.join(e.extra for e in extensions) + \
            call.data

        return SignedExtrinsic(
            call=call,
            sender=sender,
            extensions=tuple(extensions),
            signature=signature_data,
            data=self.codec.encode_compact_length(len(body)) + body
        )

    def assemble_unsigned(self, call: Payload) -> bytes:
        """
        Encodes an unsigned extrinsic (e.g. inherents) for `call`
        """
        self._check_call(call)

        body = bytes([BIT_UNSIGNED | self.extrinsic_version]) + call.data

        return self.codec.encode_compact_length(len(body)) + body
