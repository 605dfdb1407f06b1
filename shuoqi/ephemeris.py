"""JPL DE kernel back-end and kernel acquisition."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from threading import Lock
from typing import List, Set, Tuple, Union

import httpx
import numpy as np
import spiceypy as spice
from spiceypy.utils.exceptions import SpiceyError

from .astro import ApparentLongitudeOracle, ecliptic_longitude
from .oracle import AlmanacError

LOGGER = logging.getLogger(__name__)

AU_KM = 149_597_870.7
SEC_PER_DAY = 86400.0

DEFAULT_EPHEMERIS_URL = (
    "https://naif.jpl.nasa.gov/pub/naif/generic_kernels/spk/planets/de442.bsp"
)
DEFAULT_EPHEMERIS_FILENAME = "de442.bsp"
DEFAULT_CACHE_DIR = Path.home() / ".shuoqi" / "kernels"

_LOADED_PATHS: Set[str] = set()
_LOAD_LOCK = Lock()


class EphemerisError(AlmanacError):
    """Raised when kernel loading or evaluation fails."""


class EphemerisAcquisitionError(EphemerisError):
    """Raised when the default kernel cannot be acquired."""


def _kernel_files(path: Path) -> List[Path]:
    if path.is_dir():
        files = sorted(
            item for item in path.iterdir() if item.is_file() and item.suffix.lower() == ".bsp"
        )
        if not files:
            raise EphemerisError(f"No .bsp ephemeris files found in directory: {path}")
        return files
    if path.is_file():
        return [path]
    raise EphemerisError(f"Ephemeris path not found: {path}")


def load_kernels(source: Union[str, Path]) -> List[str]:
    """Furnish *source* (a ``.bsp`` file or a directory of them) once per process.

    Returns the file names of the kernels now available.
    """

    files = _kernel_files(Path(source).expanduser())
    with _LOAD_LOCK:
        if spice.ktotal("SPK") == 0:
            _LOADED_PATHS.clear()
        fresh = [item for item in files if str(item) not in _LOADED_PATHS]
        for item in fresh:
            try:
                spice.furnsh(str(item))
            except SpiceyError as exc:
                raise EphemerisError(f"Failed to load ephemeris file '{item}': {exc}") from exc
            _LOADED_PATHS.add(str(item))
    names = [item.name for item in files]
    if fresh:
        LOGGER.info(json.dumps({"event": "kernels_loaded", "files": [i.name for i in fresh]}))
    return names


def unload_kernels() -> None:
    with _LOAD_LOCK:
        spice.kclear()
        _LOADED_PATHS.clear()


class SpkOracle(ApparentLongitudeOracle):
    """Apparent longitudes from a JPL DE kernel (light time + stellar aberration).

    Only the kernel location is pickled; worker processes furnish it again on
    first use.
    """

    def __init__(self, source: Union[str, Path]):
        self.source = str(Path(source).expanduser())
        self.files = load_kernels(self.source)

    @classmethod
    def from_environment(cls) -> "SpkOracle":
        return cls(resolve_ephemeris_source())

    def __getstate__(self) -> dict:
        return {"source": self.source}

    def __setstate__(self, state: dict) -> None:
        self.source = state["source"]
        self.files = load_kernels(self.source)

    def _apparent_state(self, target: str, t: float) -> Tuple[np.ndarray, np.ndarray]:
        et = t * SEC_PER_DAY
        try:
            state, _ = spice.spkezr(target, et, "J2000", "LT+S", "EARTH")
        except SpiceyError as exc:
            raise EphemerisError(f"Kernel cannot evaluate {target} at ET {et:.1f}: {exc}") from exc
        state = np.asarray(state, dtype=float)
        return state[:3] / AU_KM, state[3:] * (SEC_PER_DAY / AU_KM)

    def sun_longitude(self, t: float) -> Tuple[float, float]:
        position, velocity = self._apparent_state("SUN", t)
        return ecliptic_longitude(t, position, velocity)

    def moon_longitude(self, t: float) -> Tuple[float, float]:
        position, velocity = self._apparent_state("MOON", t)
        return ecliptic_longitude(t, position, velocity)


# ---- kernel acquisition ----
def _download_file(url: str, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    LOGGER.info(
        json.dumps(
            {"event": "ephemeris_downloading", "url": url, "destination": str(destination)}
        )
    )
    try:
        with httpx.stream("GET", url, timeout=httpx.Timeout(120.0, connect=30.0)) as response:
            response.raise_for_status()
            total = int(response.headers.get("Content-Length", "0")) or None
            received = 0
            with destination.open("wb") as handle:
                for chunk in response.iter_bytes(chunk_size=1 << 20):
                    handle.write(chunk)
                    received += len(chunk)
    except (httpx.HTTPError, OSError) as exc:
        if destination.exists():
            destination.unlink()
        raise EphemerisAcquisitionError(f"Failed to download ephemeris from {url}: {exc}") from exc
    LOGGER.info(
        json.dumps(
            {
                "event": "ephemeris_downloaded",
                "destination": str(destination),
                "bytes": received,
                "total": total,
            }
        )
    )


def _ensure_ephemeris(path: Path) -> Path:
    """Return *path* if it holds a kernel, downloading the default one otherwise."""

    if path.is_file():
        if path.suffix.lower() != ".bsp":
            raise EphemerisAcquisitionError(f"Ephemeris file must have .bsp extension: {path}")
        return path
    if path.is_dir():
        if any(path.glob("*.bsp")):
            return path
        _download_file(DEFAULT_EPHEMERIS_URL, path / DEFAULT_EPHEMERIS_FILENAME)
        return path
    if path.exists():
        raise EphemerisAcquisitionError(f"Ephemeris path is not a file or directory: {path}")

    if path.suffix.lower() == ".bsp":
        _download_file(DEFAULT_EPHEMERIS_URL, path)
        return path
    path.mkdir(parents=True, exist_ok=True)
    _download_file(DEFAULT_EPHEMERIS_URL, path / DEFAULT_EPHEMERIS_FILENAME)
    return path


def resolve_ephemeris_source() -> Path:
    """Kernel path from ``DE_BSP``, else the cached default kernel (downloaded on demand)."""

    override = os.environ.get("DE_BSP")
    if override:
        return _ensure_ephemeris(Path(override).expanduser())

    cache_root = Path(os.environ.get("DE_BSP_CACHE_DIR", str(DEFAULT_CACHE_DIR))).expanduser()
    return _ensure_ephemeris(cache_root / DEFAULT_EPHEMERIS_FILENAME)
