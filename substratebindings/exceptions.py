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


class SubstrateRequestException(Exception):
    pass


class ConfigurationError(Exception):
    pass


class CompatibilityError(Exception):

    def __init__(self, message: str, drifted_items: list = None):
        super().__init__(message)
        self.drifted_items = drifted_items or []


class ArityError(ValueError):
    pass


class EncodingError(ValueError):
    pass


class ExtensionChainError(ValueError):
    pass


class ItemNotFound(Exception):
    pass


class BlockNotFound(Exception):
    pass


class AccountNotFound(Exception):
    pass


class AccountFull(Exception):
    pass
