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

from substratebindings import BindingTable, SubstrateClient, CompatibilityPolicy

# # Enable for debugging purposes
# import logging
# logging.basicConfig(level=logging.DEBUG)

table = BindingTable.load("bindings.json")

client = SubstrateClient(table, url="ws://127.0.0.1:9944", ss58_format=42, policy=CompatibilityPolicy.ADVISORY)

if not client.connect():
    print("Warning: node interface differs from bindings")

existential_deposit = client.constant("Balances", "ExistentialDeposit")

result = client.query_map("System", "Account", max_results=100)

for (account,), account_info in result:
    balance = account_info["data"]["free"] + account_info["data"]["reserved"]
    print(f"{account}: {balance} (reaped below {existential_deposit})")
