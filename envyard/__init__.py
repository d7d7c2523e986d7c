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

"""envyard - ephemeral multi-resource environment provisioning package."""

from __future__ import annotations

import io
import logging
import threading
from contextlib import contextmanager

from rich.console import Console


class BlockConsole:
    """Console that keeps the output of concurrent resource visits apart.

    Resources on independent branches are created on worker threads. Inside
    ``block()`` everything a thread prints goes to a private buffer, and on
    exit, whether or not the body raised, the buffer is written to the real
    console in one piece. Writes from different blocks never interleave.
    Outside a block, calls go straight to the real console.
    """

    def __init__(self, real_console: Console) -> None:
        object.__setattr__(self, "_real", real_console)
        object.__setattr__(self, "_local", threading.local())
        object.__setattr__(self, "_write_lock", threading.Lock())

    def __getattr__(self, name: str):
        target = getattr(self._local, "console", self._real)
        return getattr(target, name)

    def _capture_console(self, buf: io.StringIO) -> Console:
        real = self._real
        return Console(
            file=buf,
            width=real.width,
            color_system=real.color_system,
            force_terminal=real.is_terminal,
        )

    @contextmanager
    def block(self):
        """Collect this thread's output and write it out as one block.

        Nested blocks on the same thread share the outer buffer.
        """
        current = getattr(self._local, "buffer", None)
        if current is not None:
            yield current
            return

        buf = io.StringIO()
        self._local.buffer = buf
        self._local.console = self._capture_console(buf)
        try:
            yield buf
        finally:
            del self._local.console
            del self._local.buffer
            self._write(buf.getvalue())

    def _write(self, output: str) -> None:
        if not output:
            return
        with self._write_lock:
            self._real.file.write(output)
            self._real.file.flush()


console = BlockConsole(Console(stderr=True))
logger = logging.getLogger("envyard")
