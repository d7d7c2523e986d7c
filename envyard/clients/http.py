# /*
# Copyright 2026 The Envyard Authors.
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
# */

"""HTTPClient implementation using requests."""

from __future__ import annotations

import requests

from envyard.clients import HTTPClient
from envyard.errors import RuntimeCallError


class RequestsHTTP(HTTPClient):
    """Plain GET requests with a per-request timeout."""

    def __init__(self, timeout: float = 5.0) -> None:
        self.timeout = timeout
        self.session = requests.Session()

    def get(self, url: str) -> int:
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as err:
            raise RuntimeCallError(f"GET {url} failed: {err}") from err
        return response.status_code
