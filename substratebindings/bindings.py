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

import json
import logging
from types import MappingProxyType
from typing import Iterable, Mapping, Union

from .compatibility import interface_digest, item_digest
from .descriptor import ItemDescriptor, ItemKind
from .exceptions import ItemNotFound
from .metadata import InterfaceDescription
from .utils import load_json_file

__all__ = ['BindingTable']

logger = logging.getLogger(__name__)


class BindingTable:
    """
    Read-only table of generated bindings: the declared subset of a node interface, one ItemDescriptor per call,
    storage entry, constant and runtime method, and the expected interface digest. Loaded once, never mutated.
    """

    def __init__(self, interface: InterfaceDescription, pallets: Iterable[str], apis: Iterable[str],
                 interface_digest: Union[bytes, str], descriptors: Iterable[ItemDescriptor]):

        if isinstance(interface_digest, str):
            interface_digest = bytes.fromhex(interface_digest.replace('0x', ''))

        self.__interface = interface
        self.__pallets = frozenset(pallets)
        self.__apis = frozenset(apis)
        self.__interface_digest = interface_digest
        self.__descriptors = MappingProxyType({d.key: d for d in descriptors})

    @property
    def interface(self) -> InterfaceDescription:
        return self.__interface

    @property
    def pallets(self) -> frozenset:
        return self.__pallets

    @property
    def apis(self) -> frozenset:
        return self.__apis

    @property
    def interface_digest(self) -> bytes:
        return self.__interface_digest

    @property
    def descriptors(self) -> Mapping[tuple, ItemDescriptor]:
        return self.__descriptors

    def __len__(self):
        return len(self.__descriptors)

    def __iter__(self):
        return iter(self.__descriptors.values())

    def __repr__(self):
        return f'<BindingTable(pallets={sorted(self.pallets)}, apis={sorted(self.apis)}, items={len(self)})>'

    @classmethod
    def generate(cls, live: InterfaceDescription, pallets: Iterable[str], apis: Iterable[str] = ()) -> 'BindingTable':
        """
        Generates the binding table for the declared pallets and runtime APIs of `live`

        Parameters
        ----------
        live: InterfaceDescription of the node at generation time
        pallets: names of pallets to generate bindings for
        apis: names of runtime APIs ('Api') or runtime methods ('Api.method') to generate bindings for

        Returns
        -------
        BindingTable
        """
        pallets = sorted(set(pallets))
        apis = sorted(set(apis))

        for name in pallets:
            if name not in live.pallets:
                raise ItemNotFound(f'Pallet "{name}" not found')

        interface = live.restrict(pallets, apis)

        descriptors = []

        for pallet in interface.pallets.values():
            for kind, items in (
                    (ItemKind.CALL, pallet.calls), (ItemKind.STORAGE, pallet.storage),
                    (ItemKind.CONSTANT, pallet.constants)):
                for name in items:
                    descriptors.append(ItemDescriptor(
                        pallet.name, name, kind, item_digest(interface, pallet.name, name, kind, pallets)
                    ))

        for name in apis:
            api_name, _, method_name = name.partition('.')
            if api_name not in interface.apis or (method_name and method_name not in interface.apis[api_name].methods):
                raise ItemNotFound(f'Runtime API "{name}" not found')

        for api in interface.apis.values():
            for name in api.methods:
                descriptors.append(ItemDescriptor(
                    api.name, name, ItemKind.RUNTIME_METHOD,
                    item_digest(interface, api.name, name, ItemKind.RUNTIME_METHOD, pallets)
                ))

        logger.debug(f'Generated {len(descriptors)} bindings for pallets {pallets} and runtime APIs {apis}')

        return cls(
            interface=interface,
            pallets=pallets,
            apis=apis,
            interface_digest=interface_digest(live, pallets, apis),
            descriptors=descriptors
        )

    def get(self, pallet: str, name: str, kind: Union[ItemKind, str]) -> ItemDescriptor:
        """
        Retrieves the descriptor of an item, raises ItemNotFound when not in the table
        """
        try:
            return self.__descriptors[(pallet, name, ItemKind(kind))]
        except KeyError:
            raise ItemNotFound(f'{ItemKind(kind).value} "{pallet}.{name}" not found in binding table')

    def contains(self, descriptor: ItemDescriptor) -> bool:
        return self.__descriptors.get(descriptor.key) == descriptor

    def check_descriptor(self, descriptor: ItemDescriptor):
        """
        Raises ItemNotFound when `descriptor` is not part of this table, or its digest differs from the table's
        """
        if not self.contains(descriptor):
            raise ItemNotFound(f'{descriptor} is not a binding of this table')

    def get_call(self, descriptor: ItemDescriptor):
        self.check_descriptor(descriptor)
        return self.__interface.get_pallet(descriptor.pallet), \
            self.__interface.get_call(descriptor.pallet, descriptor.name)

    def get_storage_entry(self, descriptor: ItemDescriptor):
        self.check_descriptor(descriptor)
        return self.__interface.get_pallet(descriptor.pallet), \
            self.__interface.get_storage_entry(descriptor.pallet, descriptor.name)

    def get_constant(self, descriptor: ItemDescriptor):
        self.check_descriptor(descriptor)
        return self.__interface.get_constant(descriptor.pallet, descriptor.name)

    def get_runtime_method(self, descriptor: ItemDescriptor):
        self.check_descriptor(descriptor)
        return self.__interface.get_runtime_method(descriptor.pallet, descriptor.name)

    def to_dict(self) -> dict:
        return {
            'pallets': sorted(self.pallets),
            'apis': sorted(self.apis),
            'interface_digest': f'0x{self.interface_digest.hex()}',
            'descriptors': [d.to_dict() for d in self.descriptors.values()],
            'interface': self.interface.to_dict()
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'BindingTable':
        return cls(
            interface=InterfaceDescription.from_dict(data['interface']),
            pallets=data['pallets'],
            apis=data.get('apis', []),
            interface_digest=data['interface_digest'],
            descriptors=[ItemDescriptor.from_dict(d) for d in data['descriptors']]
        )

    def save(self, file_path: str):
        """
        Writes the binding table as JSON to `file_path`
        """
        with open(file_path, 'w') as fp:
            json.dump(self.to_dict(), fp, indent=2)

    @classmethod
    def load(cls, file_path: str) -> 'BindingTable':
        return cls.from_dict(load_json_file(file_path))
