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
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple

from scalecodec.base import ScaleBytes

from .codec import ScaleCodec
from .exceptions import ArityError
from .metadata import PalletDescription, StorageEntryDescription
from .utils.hasher import xxh128, get_hasher, concat_hash_len, TRANSPARENT_HASHERS

__all__ = ['AddressKind', 'StorageAddress', 'StorageKeyEncoder', 'storage_prefix']

logger = logging.getLogger(__name__)


class AddressKind(Enum):
    # All keys supplied, resolves to exactly one value
    EXACT = 'Exact'
    # Fewer keys than the arity, usable as prefix for key scans
    ITERABLE = 'Iterable'


def storage_prefix(pallet: str, entry: str) -> bytes:
    """
    Namespace of a storage entry: Twox128 of the pallet storage prefix followed by Twox128 of the entry name
    """
    return xxh128(pallet.encode()) + xxh128(entry.encode())


@dataclass(frozen=True)
class StorageAddress:
    pallet: str
    entry: str
    prefix: bytes
    fragments: Tuple[bytes, ...]
    arity: int
    kind: AddressKind

    @property
    def data(self) -> bytes:
        return self.prefix + b''.join(self.fragments)

    @property
    def keys_remaining(self) -> int:
        return self.arity - len(self.fragments)

    @property
    def is_exact(self) -> bool:
        return self.kind is AddressKind.EXACT

    @property
    def is_iterable(self) -> bool:
        return self.kind is AddressKind.ITERABLE

    def is_prefix_of(self, other: 'StorageAddress') -> bool:
        """
        True when the bytes of this address are a prefix of the bytes of `other`, i.e. `other` is one of the
        addresses a key scan over this address yields
        """
        return other.data[:len(self.data)] == self.data

    def to_hex(self) -> str:
        return f'0x{self.data.hex()}'

    def __str__(self):
        return f'{self.pallet}.{self.entry} ({self.kind.value}) {self.to_hex()}'


class StorageKeyEncoder:

    def __init__(self, codec: ScaleCodec = None):
        """
        Builds storage addresses from ordered key components, using the hashers the storage entry declares

        Parameters
        ----------
        codec: ScaleCodec used to encode the key components
        """
        self.codec = codec or ScaleCodec()

    def encode(self, pallet: PalletDescription, entry: StorageEntryDescription, keys: Sequence[Any] = None
               ) -> StorageAddress:
        """
        Creates the StorageAddress of `entry` for provided key components. When fewer keys than the arity of the
        entry are supplied, the address is ITERABLE and its bytes are a prefix of the addresses of all values
        sharing these keys.

        Parameters
        ----------
        pallet: PalletDescription the entry belongs to
        entry: StorageEntryDescription
        keys: list of key values in declared order, a ScaleBytes value is used as already encoded

        Returns
        -------
        StorageAddress
        """
        keys = list(keys or [])

        if len(keys) > entry.arity:
            raise ArityError(
                f'Storage entry "{pallet.name}.{entry.name}" has {entry.arity} key(s), {len(keys)} supplied'
            )

        fragments = []
        for key, key_type, key_hasher in zip(keys, entry.key_types, entry.hashers):
            if isinstance(key, ScaleBytes):
                encoded_key = bytes(key.data)
            else:
                encoded_key = self.codec.encode(key_type, key)
            fragments.append(get_hasher(key_hasher)(encoded_key))

        kind = AddressKind.EXACT if len(keys) == entry.arity else AddressKind.ITERABLE

        return StorageAddress(
            pallet=pallet.name,
            entry=entry.name,
            prefix=storage_prefix(pallet.prefix, entry.name),
            fragments=tuple(fragments),
            arity=entry.arity,
            kind=kind
        )

    def decode_keys(self, pallet: PalletDescription, entry: StorageEntryDescription, data: bytes,
                    key_count: Optional[int] = None) -> List[Any]:
        """
        Recovers the key components of a full storage key of `entry`. Only possible when the declared hashers
        keep the encoded key, i.e. Blake2_128Concat, Twox64Concat or Identity.

        Parameters
        ----------
        pallet: PalletDescription
        entry: StorageEntryDescription
        data: storage key as bytes or '0x' prefixed hex string
        key_count: amount of key components present, defaults to the arity of the entry

        Returns
        -------
        list of decoded key values
        """
        if isinstance(data, str):
            data = bytes.fromhex(data.replace('0x', ''))

        if key_count is None:
            key_count = entry.arity

        prefix = storage_prefix(pallet.prefix, entry.name)

        if data[:len(prefix)] != prefix:
            raise ValueError(f'Storage key does not belong to "{pallet.name}.{entry.name}"')

        offset = len(prefix)
        keys = []

        for key_type, key_hasher in list(zip(entry.key_types, entry.hashers))[:key_count]:
            if key_hasher not in TRANSPARENT_HASHERS:
                raise ValueError(f'Key with hasher "{key_hasher}" can not be decoded')

            offset += concat_hash_len(key_hasher)
            value, consumed = self.codec.decode_prefix(key_type, data[offset:])
            offset += consumed
            keys.append(value)

        if offset != len(data):
            raise ValueError(f'Storage key has {len(data) - offset} unexpected trailing bytes')

        return keys
