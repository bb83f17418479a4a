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

""" Hash functions used to derive Substrate storage keys and compatibility digests
"""

from hashlib import blake2b

import xxhash

__all__ = [
    'blake2_128', 'blake2_256', 'blake2_128_concat', 'xxh64', 'xxh128', 'xxh256', 'two_x64_concat', 'identity',
    'STORAGE_HASHERS', 'TRANSPARENT_HASHERS', 'get_hasher', 'concat_hash_len'
]


def blake2_256(data: bytes) -> bytes:
    """
    32 bytes Blake2b hash of provided data, used for compatibility digests, call hashes and as the
    `Blake2_256` storage hasher

    Parameters
    ----------
    data

    Returns
    -------
    bytes
    """
    return blake2b(data, digest_size=32).digest()


def blake2_128(data: bytes) -> bytes:
    return blake2b(data, digest_size=16).digest()


def blake2_128_concat(data: bytes) -> bytes:
    """
    16 bytes Blake2b hash of provided data, concatenated with the data itself so the original key
    can be recovered from the storage key

    Parameters
    ----------
    data

    Returns
    -------
    bytes
    """
    return blake2b(data, digest_size=16).digest() + data


def _xxh64_le(data: bytes, seed: int) -> bytes:
    storage_key = bytearray(xxhash.xxh64(data, seed=seed).digest())
    storage_key.reverse()
    return bytes(storage_key)


def xxh64(data: bytes) -> bytes:
    return _xxh64_le(data, seed=0)


def xxh128(data: bytes) -> bytes:
    """
    Two concatenated xxh64 hashes (seed 0 and 1) in little endian byte order, the `Twox128` hasher
    used for pallet and storage entry prefixes

    Parameters
    ----------
    data

    Returns
    -------
    bytes
    """
    return _xxh64_le(data, seed=0) + _xxh64_le(data, seed=1)


def xxh256(data: bytes) -> bytes:
    return b''.join(_xxh64_le(data, seed=seed) for seed in range(4))


def two_x64_concat(data: bytes) -> bytes:
    return _xxh64_le(data, seed=0) + data


def identity(data: bytes) -> bytes:
    return data


STORAGE_HASHERS = {
    'Blake2_128': blake2_128,
    'Blake2_256': blake2_256,
    'Blake2_128Concat': blake2_128_concat,
    'Twox128': xxh128,
    'Twox256': xxh256,
    'Twox64Concat': two_x64_concat,
    'Identity': identity
}

# Hashers that keep the encoded key readable after a fixed length hash part
TRANSPARENT_HASHERS = ('Blake2_128Concat', 'Twox64Concat', 'Identity')


def get_hasher(name: str):
    try:
        return STORAGE_HASHERS[name]
    except KeyError:
        raise ValueError(f'Unsupported hash type "{name}"')


def concat_hash_len(key_hasher: str) -> int:
    """
    Length in bytes of the hash part that precedes the encoded key for transparent hashers
    """
    if key_hasher == "Blake2_128Concat":
        return 16
    elif key_hasher == "Twox64Concat":
        return 8
    elif key_hasher == "Identity":
        return 0
    else:
        raise ValueError('Unsupported hash type')
