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

from substratebindings import BindingTable, Transport

# # Enable for debugging purposes
# import logging
# logging.basicConfig(level=logging.DEBUG)

with Transport(url="ws://127.0.0.1:9944") as transport:
    live = transport.fetch_metadata()

table = BindingTable.generate(live, ["System", "Balances"], ["AccountNonceApi"])
table.save("bindings.json")

print(f"{len(table)} bindings generated, interface digest 0x{table.interface_digest.hex()}")
