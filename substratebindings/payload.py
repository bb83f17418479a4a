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
from typing import Any, Optional, Sequence, Union

from .bindings import BindingTable
from .codec import ScaleCodec
from .descriptor import ItemDescriptor, ItemKind
from .exceptions import EncodingError
from .metadata import Field
from .storage import StorageAddress, StorageKeyEncoder
from .utils.hasher import blake2_256

__all__ = ['PayloadKind', 'Payload', 'PayloadBuilder']

logger = logging.getLogger(__name__)


class PayloadKind(Enum):
    CALL = 'Call'
    QUERY = 'Query'
    CONSTANT = 'Constant'
    RUNTIME_API_CALL = 'RuntimeApiCall'


@dataclass(frozen=True)
class Payload:
    """
    Immutable value describing one request towards a node: the encoded call data of a dispatchable, the storage
    address of a query, a constant lookup or the encoded parameters of a runtime API call. Carries the descriptor
    (and with it the digest) of the item it was built for.
    """
    kind: PayloadKind
    descriptor: ItemDescriptor
    data: bytes = b''
    address: Optional[StorageAddress] = None
    value_type: Optional[str] = None

    @property
    def digest(self) -> bytes:
        return self.descriptor.digest

    @property
    def call_hash(self) -> Optional[bytes]:
        if self.kind is PayloadKind.CALL:
            return blake2_256(self.data)

    @property
    def rpc_method_name(self) -> Optional[str]:
        """
        Name of the runtime method as used in the `state_call` RPC, e.g. 'AccountNonceApi_account_nonce'
        """
        if self.kind is PayloadKind.RUNTIME_API_CALL:
            return f'{self.descriptor.pallet}_{self.descriptor.name}'

    def to_hex(self) -> str:
        return f'0x{self.data.hex()}'

    def __str__(self):
        return f'<Payload({self.kind.value} {self.descriptor.pallet}.{self.descriptor.name}: {self.to_hex()})>'


class PayloadBuilder:

    def __init__(self, table: BindingTable, codec: ScaleCodec = None):
        """
        Builds payloads for the items of a binding table. Construction is synchronous and free of I/O, the
        compatibility of the table with a node is not checked here.

        Parameters
        ----------
        table: BindingTable
        codec: ScaleCodec, the type definitions of the table are added to it
        """
        self.table = table
        self.codec = codec or ScaleCodec()
        self.codec.update_type_registry_types(table.interface.types)
        self.key_encoder = StorageKeyEncoder(self.codec)

    @staticmethod
    def _check_kind(descriptor: ItemDescriptor, kind: ItemKind):
        if descriptor.kind is not kind:
            raise ValueError(f'{descriptor} is not a {kind.value}')

    def encode_params(self, fields: Sequence[Field], args: Union[dict, Sequence, None], label: str) -> bytes:
        """
        Encodes `args` in the order of the declared `fields`

        Parameters
        ----------
        fields: declared arguments
        args: dict of argument name to value, or a list of values by position
        label: item name used in error messages

        Returns
        -------
        bytes
        """
        if args is None:
            args = {}

        if isinstance(args, dict):
            unknown_args = set(args.keys()) - {f.name for f in fields}
            if unknown_args:
                raise EncodingError(f'Unknown argument(s) {sorted(unknown_args)} for "{label}"')

            values = []
            for arg in fields:
                if arg.name not in args:
                    raise EncodingError(f'Argument "{arg.name}" missing for "{label}"')
                values.append(args[arg.name])
        else:
            values = list(args)
            if len(values) != len(fields):
                raise EncodingError(f'"{label}" expects {len(fields)} argument(s), {len(values)} supplied')

        data = b''
        for arg, value in zip(fields, values):
            data += self.codec.encode(arg.type, value)

        return data

    def build_call(self, descriptor: ItemDescriptor, args: Union[dict, Sequence] = None) -> Payload:
        """
        Builds the call data of a dispatchable: pallet index, call index and the encoded arguments

        Parameters
        ----------
        descriptor: ItemDescriptor of kind CALL
        args: dict by argument name or list by position

        Returns
        -------
        Payload
        """
        self._check_kind(descriptor, ItemKind.CALL)
        pallet, call = self.table.get_call(descriptor)

        data = bytes([pallet.index, call.index]) + self.encode_params(call.args, args, f'{pallet.name}.{call.name}')

        return Payload(kind=PayloadKind.CALL, descriptor=descriptor, data=data)

    def build_query(self, descriptor: ItemDescriptor, address: StorageAddress) -> Payload:
        """
        Wraps a storage address of the entry of `descriptor` together with the value type of the entry
        """
        self._check_kind(descriptor, ItemKind.STORAGE)
        pallet, entry = self.table.get_storage_entry(descriptor)

        if (address.pallet, address.entry) != (pallet.name, entry.name):
            raise ValueError(f'Storage address of "{address.pallet}.{address.entry}" supplied for {descriptor}')

        return Payload(
            kind=PayloadKind.QUERY, descriptor=descriptor, data=address.data, address=address,
            value_type=entry.value_type
        )

    def build_constant(self, descriptor: ItemDescriptor) -> Payload:
        self._check_kind(descriptor, ItemKind.CONSTANT)
        constant = self.table.get_constant(descriptor)

        return Payload(kind=PayloadKind.CONSTANT, descriptor=descriptor, value_type=constant.type)

    def build_runtime_api_call(self, descriptor: ItemDescriptor, args: Union[dict, Sequence] = None) -> Payload:
        """
        Builds the encoded parameters of a runtime API method, to be executed with the `state_call` RPC
        """
        self._check_kind(descriptor, ItemKind.RUNTIME_METHOD)
        method = self.table.get_runtime_method(descriptor)

        data = self.encode_params(method.inputs, args, f'{descriptor.pallet}.{method.name}')

        return Payload(
            kind=PayloadKind.RUNTIME_API_CALL, descriptor=descriptor, data=data, value_type=method.output
        )

    def storage_address(self, pallet: str, entry: str, keys: Sequence[Any] = None) -> StorageAddress:
        pallet_desc, entry_desc = self.table.get_storage_entry(self.table.get(pallet, entry, ItemKind.STORAGE))
        return self.key_encoder.encode(pallet_desc, entry_desc, keys)

    def call(self, pallet: str, name: str, args: Union[dict, Sequence] = None) -> Payload:
        return self.build_call(self.table.get(pallet, name, ItemKind.CALL), args)

    def query(self, pallet: str, entry: str, keys: Sequence[Any] = None) -> Payload:
        """
        Builds a query payload by name, e.g. query('System', 'Account', [account_id])

        Parameters
        ----------
        pallet: name of the pallet
        entry: name of the storage entry
        keys: key components in declared order, fewer than the arity result in an ITERABLE address

        Returns
        -------
        Payload
        """
        descriptor = self.table.get(pallet, entry, ItemKind.STORAGE)
        return self.build_query(descriptor, self.storage_address(pallet, entry, keys))

    def constant(self, pallet: str, name: str) -> Payload:
        return self.build_constant(self.table.get(pallet, name, ItemKind.CONSTANT))

    def runtime_api_call(self, api: str, method: str, args: Union[dict, Sequence] = None) -> Payload:
        return self.build_runtime_api_call(self.table.get(api, method, ItemKind.RUNTIME_METHOD), args)
