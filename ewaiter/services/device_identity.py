import logging
import uuid
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

PLATFORM_ID_PATHS = (Path("/etc/machine-id"), Path("/var/lib/dbus/machine-id"))


class DeviceIdentity(Protocol):
    def current_fingerprint(self) -> str: ...


class StaticDeviceIdentity:
    """Fingerprint reported by the device itself, used on the server side."""

    def __init__(self, fingerprint: str) -> None:
        self._fingerprint = fingerprint.strip()

    def current_fingerprint(self) -> str:
        return self._fingerprint


class LocalDeviceIdentity:
    """Stable fingerprint of the machine this process runs on.

    The fingerprint is read from ``state_path`` when present, otherwise derived
    from the platform machine id and persisted. If neither works a random id is
    used for the lifetime of this object, so callers can only rely on it being
    stable for the current install.
    """

    def __init__(self, state_path: Path, platform_paths: tuple[Path, ...] = PLATFORM_ID_PATHS) -> None:
        self.state_path = Path(state_path)
        self.platform_paths = platform_paths
        self._fingerprint: str | None = None

    def current_fingerprint(self) -> str:
        if self._fingerprint is None:
            self._fingerprint = self._load() or self._derive()
        return self._fingerprint

    def _load(self) -> str | None:
        try:
            value = self.state_path.read_text(encoding="utf-8").strip()
        except OSError:
            return None
        return value or None

    def _derive(self) -> str:
        platform_id = self._platform_id()
        if platform_id is None:
            fallback = str(uuid.uuid4()).upper()
            logger.warning("Platform device id unavailable, using random fingerprint %s", fallback)
            return fallback

        fingerprint = str(uuid.uuid5(uuid.NAMESPACE_OID, platform_id)).upper()
        try:
            self.state_path.parent.mkdir(parents=True, exist_ok=True)
            self.state_path.write_text(fingerprint, encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not persist device fingerprint to %s: %s", self.state_path, exc)
        return fingerprint

    def _platform_id(self) -> str | None:
        for path in self.platform_paths:
            try:
                value = path.read_text(encoding="utf-8").strip()
            except OSError:
                continue
            if value:
                return value
        return None
