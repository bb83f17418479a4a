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

from dataclasses import dataclass
from enum import Enum

__all__ = ['ItemKind', 'ItemDescriptor']


class ItemKind(Enum):
    CALL = 'Call'
    STORAGE = 'StorageEntry'
    CONSTANT = 'Constant'
    RUNTIME_METHOD = 'RuntimeMethod'


@dataclass(frozen=True)
class ItemDescriptor:
    """
    Identifies one generated binding: a call, storage entry or constant of a pallet, or a method of a
    runtime API (in which case `pallet` holds the name of the runtime API). `digest` is the 32 bytes
    compatibility digest of the item at the moment the binding table was generated.
    """
    pallet: str
    name: str
    kind: ItemKind
    digest: bytes

    def __post_init__(self):
        if not isinstance(self.kind, ItemKind):
            object.__setattr__(self, 'kind', ItemKind(self.kind))
        if isinstance(self.digest, str):
            object.__setattr__(self, 'digest', bytes.fromhex(self.digest.replace('0x', '')))
        if len(self.digest) != 32:
            raise ValueError('Item digest should be 32 bytes long')

    @property
    def key(self) -> tuple:
        return self.pallet, self.name, self.kind

    def to_dict(self) -> dict:
        return {
            'pallet': self.pallet,
            'name': self.name,
            'kind': self.kind.value,
            'digest': f'0x{self.digest.hex()}'
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ItemDescriptor':
        return cls(pallet=data['pallet'], name=data['name'], kind=ItemKind(data['kind']), digest=data['digest'])

    def __str__(self):
        return f'{self.kind.value} {self.pallet}.{self.name}'
