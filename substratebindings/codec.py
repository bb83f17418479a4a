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
import re
from typing import Any, Optional, Tuple, Union

from scalecodec.base import RuntimeConfigurationObject, ScaleBytes, ScaleType
from scalecodec.exceptions import RemainingScaleBytesNotEmptyException, InvalidScaleTypeValueException
from scalecodec.type_registry import load_type_registry_preset

from .exceptions import EncodingError

__all__ = ['ScaleCodec', 'EMPTY_TYPES']

logger = logging.getLogger(__name__)

# Type strings that encode to zero bytes
EMPTY_TYPES = ('', '()', 'Null', 'PhantomData')

# Errors raised by scalecodec when a value does not fit its type
_CODEC_ERRORS = (
    ValueError, TypeError, KeyError, IndexError, OverflowError, AttributeError, NotImplementedError,
    RemainingScaleBytesNotEmptyException, InvalidScaleTypeValueException
)

# Compact encoding does not bound its value by the width of the inner type
_COMPACT_UINT = re.compile(r'^Compact<u(8|16|32|64|128)>$')


class ScaleCodec:

    def __init__(self, type_registry: dict = None, type_registry_preset: Optional[str] = 'legacy',
                 ss58_format: int = None, runtime_config: RuntimeConfigurationObject = None):
        """
        Deterministic SCALE encoding and decoding of values by type string, e.g. 'Compact<u128>' or 'AccountId'

        Parameters
        ----------
        type_registry: A dict containing a custom type registry in format: {'types': {'customType': 'u32'},..}
        type_registry_preset: The name of the predefined type registry shipped with the SCALE-codec, e.g. legacy
        ss58_format: The address type which account IDs will be SS58-encoded to
        runtime_config: Optionally a prepared `RuntimeConfigurationObject`
        """
        if not runtime_config:
            runtime_config = RuntimeConfigurationObject(ss58_format=ss58_format)

        self.runtime_config = runtime_config
        self.type_registry_preset = type_registry_preset
        self.type_registry = type_registry

        self.reload_type_registry()

    def reload_type_registry(self):
        """
        Resets the type registry to the core types, the configured preset and custom type registry
        """
        self.runtime_config.clear_type_registry()

        self.runtime_config.update_type_registry(load_type_registry_preset(name="core"))

        if self.type_registry_preset is not None:
            type_registry_preset_dict = load_type_registry_preset(name=self.type_registry_preset)

            if not type_registry_preset_dict:
                raise ValueError(f"Type registry preset '{self.type_registry_preset}' not found")

            self.runtime_config.update_type_registry(type_registry_preset_dict)

        if self.type_registry:
            self.runtime_config.update_type_registry(self.type_registry)

    def update_type_registry_types(self, types: dict):
        """
        Adds type definitions, in the format {'AccountData': {'type': 'struct', 'type_mapping': [...]}}

        Parameters
        ----------
        types: dict
        """
        if types:
            logger.debug(f'Adding {len(types)} type definitions to codec')
            self.runtime_config.update_type_registry_types(dict(types))

    def create_scale_object(self, type_string: str, data: ScaleBytes = None) -> ScaleType:
        return self.runtime_config.create_scale_object(type_string, data=data)

    def encode(self, type_string: str, value: Any) -> bytes:
        """
        Encodes `value` in its SCALE representation of `type_string`

        Parameters
        ----------
        type_string: e.g. 'u32', 'Compact<Balance>', 'AccountId'
        value: value in the serialized format of the type, e.g. int, '0x' hex string, dict for structs

        Returns
        -------
        bytes
        """
        if isinstance(value, ScaleBytes):
            return bytes(value.data)

        if type_string in EMPTY_TYPES:
            if value not in (None, (), [], {}):
                raise EncodingError(f'Type "{type_string}" does not take a value, {value!r} given')
            return b''

        match = _COMPACT_UINT.match(type_string)
        if match and isinstance(value, int) and not 0 <= value < 2 ** int(match.group(1)):
            raise EncodingError(f'Value {value!r} out of range for "{type_string}"')

        try:
            obj = self.create_scale_object(type_string)
            return bytes(obj.encode(value).data)
        except EncodingError:
            raise
        except _CODEC_ERRORS as e:
            raise EncodingError(f'Value {value!r} could not be encoded as "{type_string}": {e}') from e

    def decode(self, type_string: str, data: Union[bytes, str], return_scale_obj: bool = False):
        """
        Decodes SCALE bytes or hex string according to `type_string`, all bytes must be consumed

        Parameters
        ----------
        type_string
        data: bytes or '0x' prefixed hex string
        return_scale_obj: if True the SCALE object itself is returned, otherwise the serialized value

        Returns
        -------

        """
        if type_string in EMPTY_TYPES:
            return None

        if isinstance(data, (bytes, bytearray)):
            data = ScaleBytes(bytearray(data))
        else:
            data = ScaleBytes(data)

        try:
            obj = self.create_scale_object(type_string, data=data)
            obj.decode()
        except _CODEC_ERRORS as e:
            raise EncodingError(f'Data could not be decoded as "{type_string}": {e}') from e

        if return_scale_obj:
            return obj

        return obj.value

    def decode_prefix(self, type_string: str, data: bytes) -> Tuple[Any, int]:
        """
        Decodes one value of `type_string` from the start of `data`, tolerating trailing bytes

        Returns
        -------
        tuple of the serialized value and the amount of bytes consumed
        """
        if type_string in EMPTY_TYPES:
            return None, 0

        try:
            obj = self.create_scale_object(type_string, data=ScaleBytes(bytearray(data)))
            value = obj.decode(check_remaining=False)
        except _CODEC_ERRORS as e:
            raise EncodingError(f'Data could not be decoded as "{type_string}": {e}') from e

        return value, obj.data.offset

    def encode_compact_length(self, length: int) -> bytes:
        return self.encode('Compact<u32>', length)
