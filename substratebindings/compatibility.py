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

""" Detection of drift between a generated binding table and the interface a live node declares """

import json
import logging
from enum import Enum
from typing import Iterable, Optional, Union

from .descriptor import ItemDescriptor, ItemKind
from .exceptions import CompatibilityError
from .metadata import (
    InterfaceDescription, PalletDescription, CallDescription, StorageEntryDescription, ConstantDescription,
    EventDescription, RuntimeApiDescription, RuntimeMethodDescription
)
from .utils.hasher import blake2_256

__all__ = [
    'CompatibilityPolicy', 'canonical_json', 'interface_digest', 'validate', 'item_digest', 'validate_item',
    'check_compatibility'
]

logger = logging.getLogger(__name__)


class CompatibilityPolicy(Enum):
    # Raise CompatibilityError when the node has drifted
    STRICT = 'strict'
    # Log a warning and continue
    ADVISORY = 'advisory'


def canonical_json(value) -> bytes:
    """
    Serializes `value` deterministically: sorted keys, no whitespace
    """
    return json.dumps(value, sort_keys=True, separators=(',', ':')).encode()


def _fields(fields) -> list:
    return [[f.name, f.type] for f in fields]


def _canonical_call(call: CallDescription) -> dict:
    return {'index': call.index, 'args': _fields(call.args)}


def _canonical_event(event: EventDescription) -> dict:
    return {'index': event.index, 'args': _fields(event.args)}


def _canonical_storage(entry: StorageEntryDescription) -> dict:
    return {
        'modifier': entry.modifier,
        'hashers': list(entry.hashers),
        'keys': list(entry.key_types),
        'value': entry.value_type
    }


def _canonical_constant(constant: ConstantDescription) -> dict:
    return {'type': constant.type}


def _canonical_method(method: RuntimeMethodDescription) -> dict:
    return {'inputs': _fields(method.inputs), 'output': method.output}


def _canonical_api(api: RuntimeApiDescription) -> dict:
    return {'methods': {name: _canonical_method(m) for name, m in api.methods.items()}}


def _canonical_pallet(pallet: PalletDescription) -> dict:
    return {
        'index': pallet.index,
        'storage_prefix': pallet.prefix,
        'calls': {name: _canonical_call(c) for name, c in pallet.calls.items()},
        'storage': {name: _canonical_storage(s) for name, s in pallet.storage.items()},
        'constants': {name: _canonical_constant(c) for name, c in pallet.constants.items()},
        'events': {name: _canonical_event(e) for name, e in pallet.events.items()}
    }


def _canonical_extrinsic(live: InterfaceDescription) -> dict:
    return {
        'version': live.extrinsic_version,
        'address': live.address_type,
        'signature': live.signature_type,
        'signed_extensions': [[se.identifier, se.extra_type, se.additional_type] for se in live.signed_extensions]
    }


def _canonical_declared_api(live: InterfaceDescription, name: str) -> Optional[dict]:
    api_name, _, method_name = name.partition('.')

    if method_name:
        method = live.get_runtime_method(api_name, method_name)
        return _canonical_method(method) if method else None

    api = live.apis.get(api_name)
    return _canonical_api(api) if api else None


def interface_digest(live: InterfaceDescription, pallets: Iterable[str], apis: Iterable[str] = ()) -> bytes:
    """
    Computes the compatibility digest of the declared subset of `live`. Pallets and runtime APIs not declared do
    not influence the digest, documentation does not either. Declared names that are missing in `live` are part
    of the canonical form as absent. The extrinsic format and the ordered signed extension chain are always
    included, and aggregate runtime enums only contribute the variants of declared pallets.

    Parameters
    ----------
    live: InterfaceDescription of the node
    pallets: names of the declared pallets, e.g. {'System', 'Balances'}
    apis: names of the declared runtime APIs, either 'Api' or 'Api.method'

    Returns
    -------
    32 bytes digest
    """
    pallets = set(pallets)
    apis = set(apis)

    subset = live.restrict(pallets, apis)

    canonical = {
        'pallets': {
            name: _canonical_pallet(subset.pallets[name]) if name in subset.pallets else None for name in pallets
        },
        'apis': {name: _canonical_declared_api(subset, name) for name in apis},
        'extrinsic': _canonical_extrinsic(subset),
        'types': dict(subset.types)
    }

    return blake2_256(canonical_json(canonical))


def validate(live: InterfaceDescription, pallets: Iterable[str], apis: Iterable[str],
             expected_digest: Union[bytes, str]) -> bool:
    """
    Returns True when the declared subset of `live` has the expected digest. Never raises on a mismatch, the
    policy is up to the caller (see `check_compatibility()`).
    """
    if isinstance(expected_digest, str):
        expected_digest = bytes.fromhex(expected_digest.replace('0x', ''))

    return interface_digest(live, pallets, apis) == expected_digest


def _item_canonical(live: InterfaceDescription, pallet: str, name: str, kind: ItemKind,
                    pallets: Iterable[str]) -> Optional[dict]:

    if kind is ItemKind.RUNTIME_METHOD:
        method = live.get_runtime_method(pallet, name)
        if method is None:
            return None
        type_strings = [i.type for i in method.inputs] + [method.output]
        canonical = _canonical_method(method)
    else:
        pallet_desc = live.get_pallet(pallet)
        if pallet_desc is None:
            return None

        if kind is ItemKind.CALL:
            call = pallet_desc.calls.get(name)
            if call is None:
                return None
            type_strings = [a.type for a in call.args]
            canonical = dict(_canonical_call(call), pallet_index=pallet_desc.index)
        elif kind is ItemKind.STORAGE:
            entry = pallet_desc.storage.get(name)
            if entry is None:
                return None
            type_strings = list(entry.key_types) + [entry.value_type]
            canonical = dict(_canonical_storage(entry), storage_prefix=pallet_desc.prefix)
        elif kind is ItemKind.CONSTANT:
            constant = pallet_desc.constants.get(name)
            if constant is None:
                return None
            type_strings = [constant.type]
            canonical = _canonical_constant(constant)
        else:
            raise ValueError(f'Unsupported item kind {kind}')

    return {
        'kind': kind.value,
        'pallet': pallet,
        'name': name,
        'item': canonical,
        'types': live.type_closure(type_strings, pallets=pallets)
    }


def item_digest(live: InterfaceDescription, pallet: str, name: str, kind: Union[ItemKind, str],
                pallets: Iterable[str] = None) -> Optional[bytes]:
    """
    Computes the compatibility digest of a single item of `live`

    Parameters
    ----------
    live: InterfaceDescription
    pallet: pallet name, or runtime API name for runtime methods
    name: name of the call, storage entry, constant or runtime method
    kind: ItemKind
    pallets: declared pallets whose variants of aggregate runtime enums are part of the digest, defaults to
        `pallet` itself

    Returns
    -------
    32 bytes digest or None when the item is not present in `live`
    """
    if pallets is None:
        pallets = [pallet]

    canonical = _item_canonical(live, pallet, name, ItemKind(kind), pallets)

    if canonical is None:
        return None

    return blake2_256(canonical_json(canonical))


def validate_item(live: InterfaceDescription, descriptor: ItemDescriptor, pallets: Iterable[str] = None) -> bool:
    """
    Returns True when the item identified by `descriptor` is present in `live` with the same digest. `pallets` are
    the declared pallets the descriptor was generated with (see `item_digest()`).
    """
    return item_digest(live, descriptor.pallet, descriptor.name, descriptor.kind, pallets) == descriptor.digest


def check_compatibility(live: InterfaceDescription, table, policy: CompatibilityPolicy = CompatibilityPolicy.STRICT
                        ) -> bool:
    """
    Validates `live` against a BindingTable and applies `policy` when it does not match

    Parameters
    ----------
    live: InterfaceDescription of the node
    table: BindingTable
    policy: CompatibilityPolicy.STRICT raises CompatibilityError, CompatibilityPolicy.ADVISORY logs a warning

    Returns
    -------
    True when compatible
    """
    policy = CompatibilityPolicy(policy)

    if validate(live, table.pallets, table.apis, table.interface_digest):
        logger.debug('Interface of node matches binding table')
        return True

    drifted_items = [
        descriptor for descriptor in table.descriptors.values() if not validate_item(live, descriptor, table.pallets)
    ]

    message = 'Interface of node does not match binding table'
    if drifted_items:
        message += ': ' + ', '.join(str(d) for d in drifted_items)
    if _canonical_extrinsic(live) != _canonical_extrinsic(table.interface):
        message += ' (extrinsic format or signed extensions changed)'

    if policy is CompatibilityPolicy.STRICT:
        raise CompatibilityError(message, drifted_items=drifted_items)

    logger.warning(message)

    return False
