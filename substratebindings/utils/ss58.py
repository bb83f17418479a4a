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

""" SS58 is a simple address format designed for Substrate based chains.
    Encoding/decoding according to specification on
    https://github.com/paritytech/substrate/wiki/External-Address-Format-(SS58)

"""
from typing import Union

from scalecodec.utils.ss58 import ss58_decode, ss58_encode

__all__ = ['ss58_decode', 'ss58_encode', 'account_id_bytes']


def account_id_bytes(value: Union[str, bytes], ss58_format: int = None) -> bytes:
    """
    Normalizes an account identity provided as SS58 address, '0x' prefixed hex string or raw bytes to
    the 32 bytes public key

    Parameters
    ----------
    value: SS58 address, hex string or bytes
    ss58_format: Optionally the required SS58 format when `value` is an SS58 address

    Returns
    -------
    bytes
    """
    if isinstance(value, (bytes, bytearray)):
        public_key = bytes(value)
    elif value[0:2] == '0x':
        public_key = bytes.fromhex(value[2:])
    else:
        public_key = bytes.fromhex(ss58_decode(value, valid_ss58_format=ss58_format))

    if len(public_key) != 32:
        raise ValueError('Account ID should be 32 bytes long')

    return public_key
