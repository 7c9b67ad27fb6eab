"""Mermaid text -> SVG through the Mermaid CLI (``mmdc``)."""

from __future__ import annotations

import asyncio
import os
import subprocess
import tempfile
import time
from typing import Optional

from logicmap.config import SETTINGS
from logicmap.log import log


class RenderError(RuntimeError):
    """The renderer rejected the diagram, is missing, or timed out."""


class MermaidCliRenderer:
    def __init__(self, cli: Optional[str] = None, timeout: Optional[float] = None):
        self.cli = cli or SETTINGS.mermaid_cli
        self.timeout = timeout if timeout is not None else SETTINGS.render_timeout_seconds

    def _command(self, in_path: str, out_path: str) -> list[str]:
        return [self.cli, "-i", in_path, "-o", out_path, "-b", "transparent"]

    def render_to_file(self, mermaid: str, out_path: str) -> str:
        """Blocking render into ``out_path`` (.svg / .png / .pdf, picked by mmdc from the extension)."""
        if not mermaid or not mermaid.strip():
            raise RenderError("Empty flowchart")
        out_path = os.path.abspath(out_path)
        with tempfile.TemporaryDirectory(prefix="logicmap-") as tmp:
            in_path = os.path.join(tmp, "diagram.mmd")
            with open(in_path, "w", encoding="utf-8") as f:
                f.write(mermaid)
            t0 = time.perf_counter()
            try:
                subprocess.check_output(
                    self._command(in_path, out_path),
                    stderr=subprocess.STDOUT,
                    timeout=self.timeout,
                )
            except FileNotFoundError as e:
                raise RenderError(f"Mermaid CLI not found: {self.cli}") from e
            except OSError as e:
                raise RenderError(f"Mermaid CLI could not start: {e}") from e
            except subprocess.TimeoutExpired as e:
                raise RenderError(f"Mermaid render timed out after {self.timeout:.0f}s") from e
            except subprocess.CalledProcessError as e:
                out = (e.output or b"").decode("utf-8", "replace")
                raise RenderError(f"Mermaid render failed: {out[:200]}") from e
            log(f"[RENDER] {out_path} in {time.perf_counter() - t0:.3f}s", "debug")
        return out_path

    async def render(self, mermaid: str) -> str:
        """Render to SVG text without blocking the event loop."""
        if not mermaid or not mermaid.strip():
            raise RenderError("Empty flowchart")
        with tempfile.TemporaryDirectory(prefix="logicmap-") as tmp:
            in_path = os.path.join(tmp, "diagram.mmd")
            out_path = os.path.join(tmp, "diagram.svg")
            with open(in_path, "w", encoding="utf-8") as f:
                f.write(mermaid)
            try:
                proc = await asyncio.create_subprocess_exec(
                    *self._command(in_path, out_path),
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.STDOUT,
                )
            except FileNotFoundError as e:
                raise RenderError(f"Mermaid CLI not found: {self.cli}") from e
            except OSError as e:
                raise RenderError(f"Mermaid CLI could not start: {e}") from e
            try:
                out, _ = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
            except asyncio.TimeoutError as e:
                proc.kill()
                await proc.wait()
                raise RenderError(f"Mermaid render timed out after {self.timeout:.0f}s") from e
            if proc.returncode != 0:
                raise RenderError(f"Mermaid render failed: {(out or b'').decode('utf-8', 'replace')[:200]}")
            try:
                with open(out_path, encoding="utf-8") as f:
                    return f.read()
            except OSError as e:
                raise RenderError(f"Mermaid CLI produced no output: {e}") from e
