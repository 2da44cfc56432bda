# Copyright 2025 Google LLC
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
# ==============================================================================

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class ReadResult(Generic[T]):
    """
    Outcome of a read whose failure is not propagated to the caller.

    On failure `value` holds the safe default for the read (None, False or an
    empty list) and `error` carries the backend's message.
    """

    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RegistrationStats:
    """Registration counts for one event."""

    total_registrations: int = 0
    confirmed_registrations: int = 0
    pending_registrations: int = 0
    cancelled_registrations: int = 0
    checked_in_count: int = 0
