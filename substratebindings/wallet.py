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
from typing import Dict

from .client import SubstrateClient
from .constants import BASE_BLOCK_URL, MAX_CUSTODY, DEFAULT_NODE_URL, DEFAULT_SS58_FORMAT
from .descriptor import ItemKind
from .exceptions import AccountFull, AccountNotFound
from .keypair import Keypair, KeypairType
from .utils.ss58 import account_id_bytes

__all__ = ['Wallet']

logger = logging.getLogger(__name__)


class Wallet:

    def __init__(self, client: SubstrateClient, max_custody: int = MAX_CUSTODY, base_block_url: str = BASE_BLOCK_URL):
        """
        Custody of a limited amount of keypairs, with balance checks and transfers through `client`

        Parameters
        ----------
        client: SubstrateClient with System and Balances in its binding table
        max_custody: maximum amount of accounts held
        base_block_url: explorer URL the block hash of a transfer is appended to
        """
        self.client = client
        self.max_custody = max_custody
        self.base_block_url = base_block_url
        self.accounts: Dict[str, Keypair] = {}

    @classmethod
    def connect(cls, table, url: str = DEFAULT_NODE_URL, **kwargs) -> 'Wallet':
        """
        Creates a wallet connected to `url`, after the node passed validation against `table`
        """
        client = SubstrateClient(table, url=url, **kwargs)
        client.connect()
        return cls(client)

    def add_account(self, secret: str, use_sr25519: bool = True) -> str:
        """
        Adds the keypair of `secret` to the wallet

        Parameters
        ----------
        secret: '0x' prefixed hex seed or mnemonic
        use_sr25519: True for an Sr25519 keypair, False for Ed25519

        Returns
        -------
        SS58 address of the account
        """
        if len(self.accounts) >= self.max_custody:
            raise AccountFull(f'Wallet already holds the maximum of {self.max_custody} accounts')

        keypair = Keypair.create_from_secret(
            secret,
            ss58_format=self.client.config.get('ss58_format') or DEFAULT_SS58_FORMAT,
            crypto_type=KeypairType.SR25519 if use_sr25519 else KeypairType.ED25519
        )

        self.accounts[keypair.ss58_address] = keypair

        logger.info(f'Account {keypair.ss58_address} added to wallet')

        return keypair.ss58_address

    def get_account(self, address: str) -> Keypair:
        try:
            return self.accounts[address]
        except KeyError:
            raise AccountNotFound(f'Account {address} not found in wallet')

    def check_balance(self, address: str) -> int:
        """
        Total balance of `address`: free, reserved and frozen

        Returns
        -------
        int, 0 when the account does not exist on chain
        """
        account_info = self.client.query('System', 'Account', [f'0x{account_id_bytes(address).hex()}'])

        if account_info is None:
            return 0

        account_data = account_info['data']
        frozen = account_data.get('frozen', account_data.get('misc_frozen', 0))

        return account_data['free'] + account_data['reserved'] + frozen

    def transfer(self, sender: str, recipient: str, amount: int) -> str:
        """
        Transfers `amount` from the wallet account `sender` to `recipient`, keeping the sender account alive, and
        waits until the transfer is included in a block

        Returns
        -------
        Explorer URL of the block containing the transfer
        """
        keypair = self.get_account(sender)

        table = self.client.table
        _, call_desc = table.get_call(table.get('Balances', 'transfer_keep_alive', ItemKind.CALL))
        dest_type = call_desc.args[0].type
        dest = f'0x{account_id_bytes(recipient).hex()}'

        if dest_type == 'MultiAddress':
            dest = {'Id': dest}

        call = self.client.compose_call('Balances', 'transfer_keep_alive', {'dest': dest, 'value': amount})

        receipt = self.client.sign_and_submit(call, keypair, wait_for_inclusion=True)

        logger.info(f'Transfer of {amount} from {sender} to {recipient} included in block {receipt.block_hash}')

        return f'{self.base_block_url}/{receipt.block_hash}'

    def latest_block(self, finalized: bool = False) -> int:
        if finalized:
            block_hash = self.client.transport.get_chain_finalised_head()
        else:
            block_hash = self.client.transport.get_chain_head()

        return self.client.transport.get_block_number(block_hash)
