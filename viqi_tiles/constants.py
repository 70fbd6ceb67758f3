#############################################################################
#  Copyright Kitware Inc.
#
#  Licensed under the Apache License, Version 2.0 ( the "License" );
#  you may not use this file except in compliance with the License.
#  You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
#  Unless required by applicable law or agreed to in writing, software
#  distributed under the License is distributed on an "AS IS" BASIS,
#  WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#  See the License for the specific language governing permissions and
#  limitations under the License.
#############################################################################

import enum


class TierSizeCalculation(str, enum.Enum):
    DEFAULT = 'default'
    TRUNCATED = 'truncated'


class TileState(enum.IntEnum):
    IDLE = 0
    LOADING = 1
    LOADED = 2
    ERROR = 3
    # No url could be resolved for the tile; it will never be fetched.
    EMPTY = 4


DEFAULT_TILE_SIZE = 256

# Surfaces are RGBA numpy arrays
SURFACE_BANDS = 4

URL_PLACEHOLDERS = ('z', 'x', 'y', 's')
