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

from substratebindings import BindingTable, SubstrateClient, Keypair
from substratebindings.exceptions import SubstrateRequestException, CompatibilityError

# import logging
# logging.basicConfig(level=logging.DEBUG)

table = BindingTable.load("bindings.json")

client = SubstrateClient(table, url="ws://127.0.0.1:9944")

try:
    client.connect()
except CompatibilityError as e:
    print("Node does not match bindings: {}".format(e))
    for item in e.drifted_items:
        print(f"* {item}")
    raise SystemExit(1)

keypair = Keypair.create_from_secret('0xe5be9a5092b81bca64be81d212e7f2f9eba183bb7a90954f7b76361f6edb5c0a')

call = client.compose_call("Balances", "transfer_keep_alive", {
    'dest': {'Id': '0x8eaf04151687736326c9fea17e25fc5287613693c912909cb226aa4794f26a48'},
    'value': 1 * 10**15
})

try:
    receipt = client.sign_and_submit(call, keypair, era={'period': 64}, wait_for_inclusion=True)

    print('Extrinsic "{}" included in block "{}"'.format(
        receipt.extrinsic_hash, receipt.block_hash
    ))

except SubstrateRequestException as e:
    print("Failed to send: {}".format(e))
