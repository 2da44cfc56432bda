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

import unittest

from shared.json_utils import camel_to_snake, convert_keys, snake_to_camel


class JsonUtilsTest(unittest.TestCase):

    def test_name_conversion(self):
        self.assertEqual(snake_to_camel("check_in_status"), "checkInStatus")
        self.assertEqual(snake_to_camel("id"), "id")
        self.assertEqual(camel_to_snake("managedClubIds"), "managed_club_ids")
        self.assertEqual(camel_to_snake("userId"), "user_id")

    def test_convert_keys_recurses_into_lists(self):
        data = {"members": [{"userId": "u1", "userName": "Ana"}], "createdBy": "u1"}
        self.assertEqual(
            convert_keys(data, "camel_to_snake"),
            {"members": [{"user_id": "u1", "user_name": "Ana"}], "created_by": "u1"},
        )

    def test_values_are_untouched(self):
        data = {"status": "not_checked_in"}
        self.assertEqual(convert_keys(data, "snake_to_camel"), data)

    def test_unknown_direction(self):
        with self.assertRaises(ValueError):
            convert_keys({}, "kebab")


if __name__ == "__main__":
    unittest.main()
