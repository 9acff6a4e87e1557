import asyncio
import json
import os
import shutil
import subprocess
import tempfile
from typing import Any, Optional, Sequence

from ..config import SyncConfig
from ..database.models import ResolvedLink
from ..utils.logger import get_logger
from .errors import ChannelClosedError, PlayerLaunchError
from .link_resolver import prioritize_links

logger = get_logger(__name__)


def as_seconds(value: Any) -> Optional[float]:
    """mpv replies are untyped; only real numbers count as a time value."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


class PlayerController:
    """Starts mpv and talks to it over its JSON IPC socket."""

    def __init__(self, config: SyncConfig):
        self._config = config
        self._process: Optional[asyncio.subprocess.Process] = None
        self._socket_dir: Optional[str] = None
        self._request_id = 0

    def _find_executable(self) -> str:
        return shutil.which(self._config.mpv_path) or self._config.mpv_path

    def _make_socket_path(self) -> str:
        self._socket_dir = tempfile.mkdtemp(prefix="anisync_mpv_")
        return os.path.join(self._socket_dir, "mpv.sock")

    def _remove_socket_dir(self):
        if self._socket_dir is not None:
            shutil.rmtree(self._socket_dir, ignore_errors=True)
            self._socket_dir = None

    async def launch(self, links: Sequence[ResolvedLink], title: str) -> str:
        """Start mpv on the preferred link and return the IPC socket path."""
        if not links:
            raise PlayerLaunchError("Nothing to play")

        link = prioritize_links(links, self._config.link_priority)
        exe = self._find_executable()
        socket_path = self._make_socket_path()
        cmd = [
            exe,
            link.url,
            f"--input-ipc-server={socket_path}",
            f"--force-media-title={title}",
            "--force-window=yes",
            "--no-terminal",
        ]
        logger.info(f"Starting player: {exe} ({title})")
        logger.debug(f"Playing link: {link.url}")

        try:
            self._process = await asyncio.create_subprocess_exec(
                *cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL
            )
        except OSError as e:
            self._remove_socket_dir()
            raise PlayerLaunchError(f"Could not start '{exe}': {e}") from e

        await self._wait_for_socket(socket_path)
        return socket_path

    async def _wait_for_socket(self, socket_path: str):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._config.ipc_connect_timeout
        while not os.path.exists(socket_path):
            if self._process is not None and self._process.returncode is not None:
                self._remove_socket_dir()
                raise PlayerLaunchError(f"Player exited early with code {self._process.returncode}")
            if loop.time() >= deadline:
                await self.close()
                raise PlayerLaunchError(f"Player IPC socket never appeared at {socket_path}")
            await asyncio.sleep(0.1)

    async def send_command(self, socket_path: str, command: Sequence[Any]) -> Any:
        """
        Send one IPC command and return the reply's data.
        Raises ChannelClosedError once the player is gone. An mpv-level
        error (e.g. property unavailable while loading) gives None, and so
        does a reply that takes longer than the IPC timeout.
        """
        self._request_id += 1
        request_id = self._request_id
        payload = json.dumps({"command": list(command), "request_id": request_id}) + "\n"
        timeout = self._config.ipc_connect_timeout

        try:
            reader, writer = await asyncio.wait_for(asyncio.open_unix_connection(socket_path), timeout)
        except (OSError, asyncio.TimeoutError) as e:
            raise ChannelClosedError(f"Cannot reach player at {socket_path}: {e}") from e

        try:
            writer.write(payload.encode("utf-8"))
            await writer.drain()
            while True:
                try:
                    line = await asyncio.wait_for(reader.readline(), timeout)
                except asyncio.TimeoutError:
                    # Still connected, just busy; the next poll retries
                    logger.warning(f"Player did not answer {command} within {timeout}s")
                    return None
                if not line:
                    raise ChannelClosedError("Player closed the IPC socket")
                try:
                    reply = json.loads(line.decode("utf-8", errors="ignore"))
                except ValueError:
                    continue
                # Events and replies to other requests share the socket
                if not isinstance(reply, dict) or reply.get("request_id") != request_id:
                    continue
                if reply.get("error") != "success":
                    logger.debug(f"Player error for {command}: {reply.get('error')}")
                    return None
                return reply.get("data")
        except OSError as e:
            raise ChannelClosedError(f"Lost player connection: {e}") from e
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass

    async def get_duration(self, socket_path: str) -> Any:
        return await self.send_command(socket_path, ["get_property", "duration"])

    async def get_position(self, socket_path: str) -> Any:
        return await self.send_command(socket_path, ["get_property", "time-pos"])

    async def seek(self, socket_path: str, seconds: float) -> Any:
        logger.info(f"Seeking to {seconds}s")
        return await self.send_command(socket_path, ["seek", seconds, "absolute"])

    async def terminate(self):
        if self._process is None or self._process.returncode is not None:
            return
        logger.debug("Shutting down player")
        try:
            self._process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(self._process.wait(), 5)
        except asyncio.TimeoutError:
            self._process.kill()
            await self._process.wait()

    async def close(self):
        """Stop the player if it still runs and remove its IPC socket directory."""
        await self.terminate()
        self._remove_socket_dir()
