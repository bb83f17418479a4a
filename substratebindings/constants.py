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

DEFAULT_EXTRINSIC_VERSION = 4
BIT_SIGNED = 0b10000000
BIT_UNSIGNED = 0

# Signature payloads longer than this are hashed before signing
MAX_SIGNATURE_PAYLOAD_LENGTH = 256

DEFAULT_SS58_FORMAT = 42

DEFAULT_ADDRESS_TYPE = 'MultiAddress'
DEFAULT_SIGNATURE_TYPE = 'MultiSignature'

DEFAULT_NODE_URL = 'wss://boot.nagara.network:443'
BASE_BLOCK_URL = 'https://nagara.network/?rpc=wss%3A%2F%2Fboot.nagara.network#/explorer/query'

MAX_CUSTODY = 255


# Transaction pool statuses after which an extrinsic will not be included
FAILED_TRANSACTION_STATUSES = ('invalid', 'dropped', 'usurped', 'finalitytimeout')
