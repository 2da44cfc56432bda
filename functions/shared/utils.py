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

from dataclasses import asdict
from enum import Enum
from typing import Type, TypeVar

from dacite import Config, from_dict

from shared.json_utils import convert_keys

T = TypeVar("T")


def remove_none_values(data):
    """
    Returns a copy of `data` without attributes whose value is None.

    Firestore would otherwise store an explicit null for optional fields.
    Nested dicts and dicts inside lists are cleaned as well.
    """
    if isinstance(data, dict):
        return {
            key: remove_none_values(value)
            for key, value in data.items()
            if value is not None
        }
    if isinstance(data, list):
        return [remove_none_values(item) for item in data if item is not None]
    return data


def _plain_values_dict(items) -> dict:
    return {
        key: value.value if isinstance(value, Enum) else value for key, value in items
    }


def to_document(instance, exclude: tuple[str, ...] = ()) -> dict:
    """
    Converts a dataclass into the camelCase dict stored in Firestore.

    None-valued fields are dropped and enum members are stored as their values.
    """
    data = asdict(instance, dict_factory=_plain_values_dict)
    for key in exclude:
        data.pop(key, None)
    return convert_keys(remove_none_values(data), "snake_to_camel")


def from_document(data_class: Type[T], doc_id: str, data: dict) -> T:
    """Builds `data_class` from a stored camelCase document and its id."""
    fields = convert_keys(data, "camel_to_snake")
    fields["id"] = doc_id
    return from_dict(
        data_class=data_class,
        data=fields,
        config=Config(check_types=False),
    )
