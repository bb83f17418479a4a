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

from .codec import *
from .descriptor import *
from .metadata import *
from .compatibility import *
from .bindings import *
from .storage import *
from .payload import *
from .extrinsic import *
from .keypair import *
from .transport import *
from .client import *
from .wallet import *

__all__ = (
    codec.__all__ + descriptor.__all__ + metadata.__all__ + compatibility.__all__ + bindings.__all__ +
    storage.__all__ + payload.__all__ + extrinsic.__all__ + keypair.__all__ + transport.__all__ + client.__all__ +
    wallet.__all__
)
