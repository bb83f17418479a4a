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

""" In-memory model of the interface a node declares in its runtime metadata: pallets with their calls,
    storage entries, constants and events, runtime APIs with their methods and the signed extension chain.
"""

import dataclasses
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from .constants import DEFAULT_ADDRESS_TYPE, DEFAULT_SIGNATURE_TYPE, DEFAULT_EXTRINSIC_VERSION

__all__ = [
    'Field', 'CallDescription', 'EventDescription', 'StorageEntryDescription', 'ConstantDescription',
    'PalletDescription', 'RuntimeMethodDescription', 'RuntimeApiDescription', 'SignedExtensionDescription',
    'InterfaceDescription', 'PortableTypeResolver'
]


def _to_bytes(value) -> bytes:
    if value is None:
        return b''
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return bytes.fromhex(value[2:] if value[0:2] == '0x' else value)
    return bytes(value)


def _readonly(mapping) -> Mapping:
    if isinstance(mapping, MappingProxyType):
        return mapping
    return MappingProxyType(dict(mapping or {}))


def _by_name(items) -> Mapping:
    if isinstance(items, Mapping):
        return _readonly(items)
    return _readonly({item.name: item for item in items or []})


@dataclass(frozen=True)
class Field:
    name: Optional[str]
    type: str

    @classmethod
    def from_dict(cls, data: dict) -> 'Field':
        return cls(name=data.get('name'), type=data['type'])

    def to_dict(self) -> dict:
        return {'name': self.name, 'type': self.type}


def _fields(items) -> Tuple[Field, ...]:
    return tuple(item if isinstance(item, Field) else Field.from_dict(item) for item in items or [])


@dataclass(frozen=True)
class CallDescription:
    name: str
    index: int
    args: Tuple[Field, ...] = ()
    docs: Tuple[str, ...] = field(default=(), compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'args', _fields(self.args))

    @classmethod
    def from_dict(cls, data: dict) -> 'CallDescription':
        return cls(
            name=data['name'], index=data['index'], args=_fields(data.get('args')), docs=tuple(data.get('docs', []))
        )

    def to_dict(self) -> dict:
        return {'name': self.name, 'index': self.index, 'args': [a.to_dict() for a in self.args]}


@dataclass(frozen=True)
class EventDescription:
    name: str
    index: int
    args: Tuple[Field, ...] = ()
    docs: Tuple[str, ...] = field(default=(), compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'args', _fields(self.args))

    @classmethod
    def from_dict(cls, data: dict) -> 'EventDescription':
        return cls(
            name=data['name'], index=data['index'], args=_fields(data.get('args')), docs=tuple(data.get('docs', []))
        )

    def to_dict(self) -> dict:
        return {'name': self.name, 'index': self.index, 'args': [a.to_dict() for a in self.args]}


@dataclass(frozen=True)
class StorageEntryDescription:
    """
    A storage entry: plain entries have no keys, maps have one key type and one hasher per key component
    """
    name: str
    value_type: str
    key_types: Tuple[str, ...] = ()
    hashers: Tuple[str, ...] = ()
    modifier: str = 'Optional'
    default: bytes = b''
    docs: Tuple[str, ...] = field(default=(), compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'key_types', tuple(self.key_types))
        object.__setattr__(self, 'hashers', tuple(self.hashers))
        object.__setattr__(self, 'default', _to_bytes(self.default))

        if len(self.key_types) != len(self.hashers):
            raise ValueError(
                f'Storage entry "{self.name}" declares {len(self.key_types)} key types '
                f'but {len(self.hashers)} hashers'
            )

    @property
    def arity(self) -> int:
        return len(self.key_types)

    @property
    def is_map(self) -> bool:
        return self.arity > 0

    @classmethod
    def from_dict(cls, data: dict) -> 'StorageEntryDescription':
        return cls(
            name=data['name'],
            value_type=data['value_type'],
            key_types=data.get('key_types', []),
            hashers=data.get('hashers', []),
            modifier=data.get('modifier', 'Optional'),
            default=data.get('default'),
            docs=tuple(data.get('docs', []))
        )

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'modifier': self.modifier,
            'hashers': list(self.hashers),
            'key_types': list(self.key_types),
            'value_type': self.value_type,
            'default': f'0x{self.default.hex()}'
        }


@dataclass(frozen=True)
class ConstantDescription:
    name: str
    type: str
    value: bytes = b''
    docs: Tuple[str, ...] = field(default=(), compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'value', _to_bytes(self.value))

    @classmethod
    def from_dict(cls, data: dict) -> 'ConstantDescription':
        return cls(name=data['name'], type=data['type'], value=data.get('value'), docs=tuple(data.get('docs', [])))

    def to_dict(self) -> dict:
        return {'name': self.name, 'type': self.type, 'value': f'0x{self.value.hex()}'}


@dataclass(frozen=True)
class PalletDescription:
    name: str
    index: int
    calls: Mapping[str, CallDescription] = field(default_factory=dict)
    storage: Mapping[str, StorageEntryDescription] = field(default_factory=dict)
    constants: Mapping[str, ConstantDescription] = field(default_factory=dict)
    events: Mapping[str, EventDescription] = field(default_factory=dict)
    storage_prefix: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'calls', _by_name(self.calls))
        object.__setattr__(self, 'storage', _by_name(self.storage))
        object.__setattr__(self, 'constants', _by_name(self.constants))
        object.__setattr__(self, 'events', _by_name(self.events))

    @property
    def prefix(self) -> str:
        """
        Name used to derive the storage key prefix of the entries of this pallet
        """
        return self.storage_prefix or self.name

    @classmethod
    def from_dict(cls, data: dict) -> 'PalletDescription':
        return cls(
            name=data['name'],
            index=data['index'],
            storage_prefix=data.get('storage_prefix'),
            calls=[CallDescription.from_dict(c) for c in data.get('calls', [])],
            storage=[StorageEntryDescription.from_dict(s) for s in data.get('storage', [])],
            constants=[ConstantDescription.from_dict(c) for c in data.get('constants', [])],
            events=[EventDescription.from_dict(e) for e in data.get('events', [])]
        )

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'index': self.index,
            'storage_prefix': self.storage_prefix,
            'calls': [c.to_dict() for c in self.calls.values()],
            'storage': [s.to_dict() for s in self.storage.values()],
            'constants': [c.to_dict() for c in self.constants.values()],
            'events': [e.to_dict() for e in self.events.values()]
        }


@dataclass(frozen=True)
class RuntimeMethodDescription:
    name: str
    inputs: Tuple[Field, ...] = ()
    output: str = '()'
    docs: Tuple[str, ...] = field(default=(), compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'inputs', _fields(self.inputs))

    @classmethod
    def from_dict(cls, data: dict) -> 'RuntimeMethodDescription':
        return cls(
            name=data['name'], inputs=_fields(data.get('inputs')), output=data.get('output', '()'),
            docs=tuple(data.get('docs', []))
        )

    def to_dict(self) -> dict:
        return {'name': self.name, 'inputs': [i.to_dict() for i in self.inputs], 'output': self.output}


@dataclass(frozen=True)
class RuntimeApiDescription:
    name: str
    methods: Mapping[str, RuntimeMethodDescription] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'methods', _by_name(self.methods))

    @classmethod
    def from_dict(cls, data: dict) -> 'RuntimeApiDescription':
        return cls(name=data['name'], methods=[RuntimeMethodDescription.from_dict(m) for m in data.get('methods', [])])

    def to_dict(self) -> dict:
        return {'name': self.name, 'methods': [m.to_dict() for m in self.methods.values()]}


@dataclass(frozen=True)
class SignedExtensionDescription:
    """
    One element of the signed extension chain. `extra_type` is encoded in the extrinsic and in the
    signature payload, `additional_type` only in the signature payload.
    """
    identifier: str
    extra_type: str = '()'
    additional_type: str = '()'

    @classmethod
    def from_dict(cls, data: dict) -> 'SignedExtensionDescription':
        return cls(
            identifier=data['identifier'],
            extra_type=data.get('extra_type', '()'),
            additional_type=data.get('additional_type', '()')
        )

    def to_dict(self) -> dict:
        return {'identifier': self.identifier, 'extra_type': self.extra_type, 'additional_type': self.additional_type}


# Runtime wide enums with one variant per pallet, named after the pallet
AGGREGATE_ENUM_NAMES = ('RuntimeCall', 'RuntimeEvent', 'RuntimeError')


def is_aggregate_enum(name: str, definition) -> bool:
    return isinstance(definition, Mapping) and definition.get('type') == 'enum' and \
        name.rpartition('::')[2] in AGGREGATE_ENUM_NAMES


def prune_aggregate_enum(definition: Mapping, pallets: Iterable[str]) -> dict:
    """
    Replaces the variants of pallets not in `pallets` by placeholders and drops trailing placeholders. Variant
    indices stay in place.
    """
    pallets = set(pallets)
    type_mapping = [
        [name, type_string] if name in pallets else [f'__{index}', 'Null']
        for index, (name, type_string) in enumerate(definition.get('type_mapping') or [])
    ]
    while type_mapping and type_mapping[-1][0] not in pallets:
        type_mapping.pop()

    return dict(definition, type_mapping=type_mapping)


def _definition_references(definition) -> List[str]:
    if isinstance(definition, str):
        return [definition]
    if isinstance(definition, Mapping):
        references = [type_string for _, type_string in definition.get('type_mapping') or []]
        if definition.get('base_class'):
            references.append(definition['base_class'])
        return references
    return []


@dataclass(frozen=True)
class InterfaceDescription:
    """
    The declared schema of a node: pallets, runtime APIs, the signed extension chain and the type definitions
    (scalecodec type registry format) referenced by them
    """
    pallets: Mapping[str, PalletDescription] = field(default_factory=dict)
    apis: Mapping[str, RuntimeApiDescription] = field(default_factory=dict)
    signed_extensions: Tuple[SignedExtensionDescription, ...] = ()
    types: Mapping[str, Any] = field(default_factory=dict)
    extrinsic_version: int = DEFAULT_EXTRINSIC_VERSION
    address_type: str = DEFAULT_ADDRESS_TYPE
    signature_type: str = DEFAULT_SIGNATURE_TYPE

    def __post_init__(self):
        object.__setattr__(self, 'pallets', _by_name(self.pallets))
        object.__setattr__(self, 'apis', _by_name(self.apis))
        object.__setattr__(self, 'signed_extensions', tuple(self.signed_extensions))
        object.__setattr__(self, 'types', _readonly(self.types))
        object.__setattr__(self, '_type_pattern', None)

    def get_pallet(self, name: str) -> Optional[PalletDescription]:
        return self.pallets.get(name)

    def get_call(self, pallet: str, name: str) -> Optional[CallDescription]:
        if pallet in self.pallets:
            return self.pallets[pallet].calls.get(name)

    def get_storage_entry(self, pallet: str, name: str) -> Optional[StorageEntryDescription]:
        if pallet in self.pallets:
            return self.pallets[pallet].storage.get(name)

    def get_constant(self, pallet: str, name: str) -> Optional[ConstantDescription]:
        if pallet in self.pallets:
            return self.pallets[pallet].constants.get(name)

    def get_runtime_method(self, api: str, name: str) -> Optional[RuntimeMethodDescription]:
        if api in self.apis:
            return self.apis[api].methods.get(name)

    @property
    def signed_extension_identifiers(self) -> List[str]:
        return [se.identifier for se in self.signed_extensions]

    def referenced_type_strings(self) -> List[str]:
        """
        All type strings used by pallets, runtime APIs and the extrinsic format of this description
        """
        type_strings = [self.address_type, self.signature_type]

        for pallet in self.pallets.values():
            for call in pallet.calls.values():
                type_strings += [arg.type for arg in call.args]
            for entry in pallet.storage.values():
                type_strings += list(entry.key_types) + [entry.value_type]
            for constant in pallet.constants.values():
                type_strings.append(constant.type)
            for event in pallet.events.values():
                type_strings += [arg.type for arg in event.args]

        for api in self.apis.values():
            for method in api.methods.values():
                type_strings += [i.type for i in method.inputs] + [method.output]

        for se in self.signed_extensions:
            type_strings += [se.extra_type, se.additional_type]

        return type_strings

    def _get_type_pattern(self):
        if self._type_pattern is None and self.types:
            names = sorted(self.types.keys(), key=len, reverse=True)
            pattern = re.compile(r'(?<![\w:])(' + '|'.join(re.escape(n) for n in names) + r')(?![\w:<])')
            object.__setattr__(self, '_type_pattern', pattern)
        return self._type_pattern

    def type_closure(self, type_strings: Iterable[str], pallets: Iterable[str] = None) -> dict:
        """
        Collects the definitions of all types referenced, directly or through other definitions, by `type_strings`

        Parameters
        ----------
        type_strings: list of type strings e.g. ['Vec<AccountInfo>', 'u32']
        pallets: when given, aggregate runtime enums (RuntimeCall, RuntimeEvent, RuntimeError) only keep the
            variants of these pallets and the closure does not follow the others

        Returns
        -------
        dict of type name to definition
        """
        pattern = self._get_type_pattern()
        if pattern is None:
            return {}

        if pallets is not None:
            pallets = set(pallets)

        closure = {}
        pending = list(type_strings)

        while pending:
            type_string = pending.pop()
            if not type_string:
                continue
            for name in pattern.findall(type_string):
                if name not in closure:
                    definition = self.types[name]
                    if pallets is not None and is_aggregate_enum(name, definition):
                        definition = prune_aggregate_enum(definition, pallets)
                    closure[name] = definition
                    pending += _definition_references(definition)

        return closure

    def restrict(self, pallets: Iterable[str], apis: Iterable[str] = ()) -> 'InterfaceDescription':
        """
        Returns the subset of this description containing only the named pallets and runtime APIs, and the type
        definitions they reference. Runtime APIs can be named as 'Api' (all methods) or 'Api.method'.

        Names that are not present are left out. Aggregate runtime enums keep only the variants of the named
        pallets.
        """
        selected_pallets = {name: self.pallets[name] for name in sorted(set(pallets)) if name in self.pallets}

        selected_apis = {}
        for name in sorted(set(apis)):
            api_name, _, method_name = name.partition('.')
            api = self.apis.get(api_name)
            if api is None:
                continue
            if not method_name:
                selected_apis[api_name] = api
                continue
            method = api.methods.get(method_name)
            if method is None:
                continue
            if api_name in selected_apis:
                methods = dict(selected_apis[api_name].methods)
            else:
                methods = {}
            methods[method_name] = method
            selected_apis[api_name] = RuntimeApiDescription(name=api_name, methods=methods)

        subset = dataclasses.replace(self, pallets=selected_pallets, apis=selected_apis, types={})

        return dataclasses.replace(
            subset, types=self.type_closure(subset.referenced_type_strings(), pallets=selected_pallets.keys())
        )

    @classmethod
    def from_dict(cls, data: dict) -> 'InterfaceDescription':
        """
        Creates an InterfaceDescription from its dict representation, as produced by `to_dict()`
        """
        return cls(
            pallets=[PalletDescription.from_dict(p) for p in data.get('pallets', [])],
            apis=[RuntimeApiDescription.from_dict(a) for a in data.get('apis', [])],
            signed_extensions=[SignedExtensionDescription.from_dict(se) for se in data.get('signed_extensions', [])],
            types=data.get('types', {}),
            extrinsic_version=data.get('extrinsic_version', DEFAULT_EXTRINSIC_VERSION),
            address_type=data.get('address_type', DEFAULT_ADDRESS_TYPE),
            signature_type=data.get('signature_type', DEFAULT_SIGNATURE_TYPE)
        )

    def to_dict(self) -> dict:
        return {
            'pallets': [p.to_dict() for p in self.pallets.values()],
            'apis': [a.to_dict() for a in self.apis.values()],
            'signed_extensions': [se.to_dict() for se in self.signed_extensions],
            'types': {name: definition for name, definition in self.types.items()},
            'extrinsic_version': self.extrinsic_version,
            'address_type': self.address_type,
            'signature_type': self.signature_type
        }

    @classmethod
    def from_metadata(cls, metadata: dict) -> 'InterfaceDescription':
        """
        Creates an InterfaceDescription from the serialized value of a decoded `MetadataVersioned` (V14 or V15)

        Parameters
        ----------
        metadata: dict e.g. {'magicNumber': 1635018093, 'metadata': {'V14': {'types': ..., 'pallets': ...}}}

        Returns
        -------
        InterfaceDescription
        """
        if 'metadata' in metadata:
            metadata = metadata['metadata']

        if 'pallets' not in metadata:
            version, metadata = next(iter(metadata.items()))
            if version not in ('V14', 'V15'):
                raise NotImplementedError(f"Metadata version {version} not supported")

        portable_types = metadata['types']
        if isinstance(portable_types, Mapping):
            portable_types = portable_types['types']

        resolver = PortableTypeResolver(portable_types, pallets=metadata['pallets'])

        pallets = [resolver.pallet_description(pallet) for pallet in metadata['pallets']]

        apis = [
            RuntimeApiDescription(
                name=api['name'],
                methods=[
                    RuntimeMethodDescription(
                        name=method['name'],
                        inputs=[Field(i['name'], resolver.type_string(i['type'])) for i in method['inputs']],
                        output=resolver.type_string(method['output']),
                        docs=tuple(method.get('docs') or [])
                    ) for method in api['methods']
                ]
            ) for api in metadata.get('apis') or []
        ]

        extrinsic = metadata['extrinsic']

        signed_extensions = [
            SignedExtensionDescription(
                identifier=se['identifier'],
                extra_type=resolver.type_string(se['ty']),
                additional_type=resolver.type_string(se['additional_signed'])
            ) for se in extrinsic['signed_extensions']
        ]

        if 'address_type' in extrinsic:
            # V15
            address_type = resolver.type_string(extrinsic['address_type'])
            signature_type = resolver.type_string(extrinsic['signature_type'])
        else:
            extrinsic_params = {
                p['name']: p['type'] for p in resolver.registry[extrinsic['ty']].get('params', [])
            }
            address_type = resolver.type_string(extrinsic_params['Address']) \
                if extrinsic_params.get('Address') is not None else DEFAULT_ADDRESS_TYPE
            signature_type = resolver.type_string(extrinsic_params['Signature']) \
                if extrinsic_params.get('Signature') is not None else DEFAULT_SIGNATURE_TYPE

        return cls(
            pallets=pallets,
            apis=apis,
            signed_extensions=signed_extensions,
            types=resolver.definitions,
            extrinsic_version=extrinsic['version'],
            address_type=address_type,
            signature_type=signature_type
        )


class PortableTypeResolver:
    """
    Converts the portable type registry of V14+ metadata to type strings the SCALE codec understands, collecting
    struct and enum definitions in scalecodec type registry format along the way. Names are derived from type paths
    and generic parameters, never from registry ids, so the same types resolve to the same names across runtimes.
    """

    path_overrides = {
        'sp_core::crypto::AccountId32': 'AccountId',
        'sp_runtime::multiaddress::MultiAddress': 'MultiAddress',
        'sp_runtime::MultiSignature': 'MultiSignature',
        'sp_runtime::generic::era::Era': 'Era',
        'primitive_types::H160': 'H160',
        'primitive_types::H256': 'H256',
        'primitive_types::H512': 'H512',
        'sp_arithmetic::per_things::Perbill': 'Perbill',
        'sp_arithmetic::per_things::Permill': 'Permill'
    }

    primitive_types = {
        'bool': 'bool', 'char': 'char', 'str': 'Text',
        'u8': 'u8', 'u16': 'u16', 'u32': 'u32', 'u64': 'u64', 'u128': 'u128', 'u256': 'u256',
        'i8': 'i8', 'i16': 'i16', 'i32': 'i32', 'i64': 'i64', 'i128': 'i128', 'i256': 'i256'
    }

    def __init__(self, portable_types: list, pallets: list = None):
        self.registry = {t['id']: t['type'] for t in portable_types}
        self.type_strings = {}
        self.definitions = {}
        self.instance_names = self._instance_names(pallets or [])

    def _instance_names(self, pallets: list) -> dict:
        """
        Call, event and error types of instanced pallets share their path, e.g. pallet_collective::pallet::Call for
        both Council and TechnicalCommittee. These are qualified with the name of the pallet that owns them.
        """
        owners = {}
        for pallet in pallets:
            for item in ('calls', 'event', 'error'):
                if pallet.get(item):
                    owners[pallet[item].get('ty', pallet[item].get('type'))] = pallet['name']

        by_path = {}
        for si_type_id in owners:
            path = tuple(self.registry[si_type_id].get('path') or [])
            by_path.setdefault(path, []).append(si_type_id)

        return {si_type_id: owners[si_type_id] for ids in by_path.values() if len(ids) > 1 for si_type_id in ids}

    @staticmethod
    def _def_of(registry_type: dict) -> Tuple[str, Any]:
        type_def = registry_type.get('def') or registry_type.get('def_')
        if isinstance(type_def, str):
            return type_def, None
        return next(iter(type_def.items()))

    def type_string(self, si_type_id: int) -> str:
        if si_type_id in self.type_strings:
            return self.type_strings[si_type_id]

        if si_type_id not in self.registry:
            raise ValueError(f"RegistryType not found with id {si_type_id}")

        registry_type = self.registry[si_type_id]
        path = registry_type.get('path') or []
        def_name, def_value = self._def_of(registry_type)

        path_string = '::'.join(path)

        if path_string in self.path_overrides:
            type_string = self.path_overrides[path_string]
        elif def_name == 'primitive':
            if def_value not in self.primitive_types:
                raise ValueError(f'Primitive type "{def_value}" not found')
            type_string = self.primitive_types[def_value]
        elif def_name == 'compact':
            type_string = f"Compact<{self.type_string(def_value['type'])}>"
        elif def_name == 'sequence':
            element = self.type_string(def_value['type'])
            type_string = 'Bytes' if element == 'u8' else f'Vec<{element}>'
        elif def_name == 'array':
            type_string = f"[{self.type_string(def_value['type'])}; {def_value['len']}]"
        elif def_name == 'tuple':
            type_string = self._tuple_string(def_value)
        elif def_name == 'bitsequence':
            type_string = 'BitVec'
        elif def_name == 'phantom':
            type_string = '()'
        elif def_name == 'composite':
            type_string = self._composite_type_string(si_type_id, path, def_value['fields'])
        elif def_name == 'variant':
            type_string = self._variant_type_string(si_type_id, path, def_value['variants'])
        else:
            raise NotImplementedError(f"RegistryTypeDef {def_name} not implemented")

        self.type_strings[si_type_id] = type_string

        return type_string

    def _tuple_string(self, type_ids: list) -> str:
        if len(type_ids) == 0:
            return '()'
        if len(type_ids) == 1:
            return self.type_string(type_ids[0])
        return f"({', '.join(self.type_string(i) for i in type_ids)})"

    def _type_name(self, si_type_id: int, path: list) -> str:
        base_name = '::'.join(path) or f'scale_info::{si_type_id}'

        if si_type_id in self.instance_names:
            base_name = f'{base_name}::{self.instance_names[si_type_id]}'

        # Provisional name while resolving generic params, for self referencing types
        self.type_strings[si_type_id] = base_name

        params = [p for p in self.registry[si_type_id].get('params') or [] if p.get('type') is not None]
        if params:
            return f"{base_name}<{', '.join(self.type_string(p['type']) for p in params)}>"
        return base_name

    def _fields_definition(self, fields: list):
        """
        Returns either a type string (no fields, tuple-like fields) or a struct definition (named fields)
        """
        if len(fields) > 0 and all(f.get('name') for f in fields):
            return {
                'type': 'struct',
                'type_mapping': [[f['name'], self.type_string(f['type'])] for f in fields]
            }
        return self._tuple_string([f['type'] for f in fields])

    def _composite_type_string(self, si_type_id: int, path: list, fields: list) -> str:
        if len(fields) == 0:
            return '()'

        if not all(f.get('name') for f in fields):
            # Tuple-like composites encode the same as their fields
            return self._tuple_string([f['type'] for f in fields])

        name = self._type_name(si_type_id, path)
        self.type_strings[si_type_id] = name
        self.definitions[name] = self._fields_definition(fields)

        return name

    def _variant_type_string(self, si_type_id: int, path: list, variants: list) -> str:
        if path == ['Option']:
            params = self.registry[si_type_id].get('params') or []
            return f"Option<{self.type_string(params[0]['type'])}>"

        name = self._type_name(si_type_id, path)
        self.type_strings[si_type_id] = name

        type_mapping = []
        if len(variants) > 0:
            variant_length = max(v['index'] for v in variants) + 1
            type_mapping = [[f'__{i}', 'Null'] for i in range(variant_length)]

        for variant in variants:
            variant_def = self._fields_definition(variant.get('fields') or [])

            if isinstance(variant_def, dict):
                variant_type = f"{name}::{variant['name']}"
                self.definitions[variant_type] = variant_def
            elif variant_def == '()':
                variant_type = 'Null'
            else:
                variant_type = variant_def

            type_mapping[variant['index']] = [variant['name'], variant_type]

        self.definitions[name] = {'type': 'enum', 'type_mapping': type_mapping}

        return name

    def pallet_description(self, pallet: dict) -> PalletDescription:
        calls = []
        if pallet.get('calls'):
            for variant in self._variants(pallet['calls']):
                calls.append(CallDescription(
                    name=variant['name'],
                    index=variant['index'],
                    args=[Field(f.get('name'), self.type_string(f['type'])) for f in variant.get('fields') or []],
                    docs=tuple(variant.get('docs') or [])
                ))

        events = []
        if pallet.get('event'):
            for variant in self._variants(pallet['event']):
                events.append(EventDescription(
                    name=variant['name'],
                    index=variant['index'],
                    args=[Field(f.get('name'), self.type_string(f['type'])) for f in variant.get('fields') or []],
                    docs=tuple(variant.get('docs') or [])
                ))

        storage = []
        storage_prefix = None
        if pallet.get('storage'):
            storage_prefix = pallet['storage']['prefix']
            for entry in pallet['storage']['entries']:
                storage.append(self.storage_entry_description(entry))

        constants = [
            ConstantDescription(
                name=c['name'], type=self.type_string(c['type']), value=c['value'],
                docs=tuple(c.get('docs') or c.get('documentation') or [])
            ) for c in pallet.get('constants') or []
        ]

        return PalletDescription(
            name=pallet['name'],
            index=pallet['index'],
            storage_prefix=storage_prefix,
            calls=calls,
            storage=storage,
            constants=constants,
            events=events
        )

    def _variants(self, pallet_item: dict) -> list:
        si_type_id = pallet_item.get('ty', pallet_item.get('type'))
        def_name, def_value = self._def_of(self.registry[si_type_id])
        if def_name != 'variant':
            raise ValueError(f'Type {si_type_id} is not a variant type')
        return sorted(def_value['variants'], key=lambda v: v['index'])

    def storage_entry_description(self, entry: dict) -> StorageEntryDescription:
        entry_type = entry['type']

        if 'Plain' in entry_type:
            key_types = []
            hashers = []
            value_type = self.type_string(entry_type['Plain'])
        else:
            map_type = entry_type['Map']
            hashers = list(map_type['hashers'])
            value_type = self.type_string(map_type['value'])

            if len(hashers) == 1:
                key_types = [self.type_string(map_type['key'])]
            else:
                def_name, def_value = self._def_of(self.registry[map_type['key']])
                if def_name != 'tuple' or len(def_value) != len(hashers):
                    raise ValueError(f"Storage entry '{entry['name']}' key does not match its hashers")
                key_types = [self.type_string(i) for i in def_value]

        return StorageEntryDescription(
            name=entry['name'],
            modifier=entry.get('modifier', 'Optional'),
            key_types=key_types,
            hashers=hashers,
            value_type=value_type,
            default=entry.get('default'),
            docs=tuple(entry.get('docs') or entry.get('documentation') or [])
        )
