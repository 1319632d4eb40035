# Copyright 2025 TIER IV, inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class MalformedRecord:
    """A record that could not be turned into a package and was skipped."""

    ordinal: int
    reason: str
    name: Optional[str] = None

    def __str__(self) -> str:
        label = f" '{self.name}'" if self.name else ""
        return f"record #{self.ordinal}{label}: {self.reason}"
