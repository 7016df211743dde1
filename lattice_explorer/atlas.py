"""Pattern atlas: animated contact sheets of representative periodic cells."""

import logging
import os
import tempfile
import numpy as np
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from PIL import Image

try:
    import matplotlib.pyplot as plt
    HAS_MATPLOTLIB = True
except ImportError:
    HAS_MATPLOTLIB = False

from .parameters import format_parameters
from .periodicity import PeriodHistogram, PeriodicityResult, repeats

logger = logging.getLogger(__name__)

BACKGROUND = 0  # Also used for gridlines
FOREGROUND = 1  # Highest cell state
ACCENT = 2  # Fills slots for which no cell qualified
FIRST_GENERATED = 3
PALETTE_SIZE = 256

BACKGROUND_COLOR = (0, 0, 0)
FOREGROUND_COLOR = (255, 255, 255)
ACCENT_COLOR = (255, 96, 0)

SLOTS = 16
COLUMNS = 4
CLIP_RADIUS = 20
VISIBILITY_THRESHOLD = 0.01
MAX_ATTEMPTS = 10000
FRAME_DURATION = 33  # ms requested; GIF delays are whole centiseconds, so files carry 30 ms

Position = Tuple[int, int]


class ArtifactWriteError(OSError):
    """The atlas could not be written. Recoverable: the search carries on."""


def _triangle(t: float) -> float:
    return min(max(abs(6.0 * (t % 1.0) - 3.0) - 1.0, 0.0), 1.0)


def hue_to_rgb(hue: float) -> Tuple[int, int, int]:
    """Triangle-wave hue wheel; green and blue trail red by 1/3 and 2/3 of a turn."""
    r = _triangle(hue)
    g = _triangle(hue + 2.0 / 3.0)
    b = _triangle(hue + 1.0 / 3.0)
    return int(round(r * 255)), int(round(g * 255)), int(round(b * 255))


def build_palette() -> np.ndarray:
    """
    256 RGB entries. After the three fixed colors the hue wheel is walked with
    a step that starts at a full turn and halves every time the hue wraps, so
    early entries are far apart and later ones fill the gaps.
    """
    palette = np.zeros((PALETTE_SIZE, 3), dtype=np.uint8)
    palette[BACKGROUND] = BACKGROUND_COLOR
    palette[FOREGROUND] = FOREGROUND_COLOR
    palette[ACCENT] = ACCENT_COLOR

    hue, step = 0.0, 1.0
    for index in range(FIRST_GENERATED, PALETTE_SIZE):
        palette[index] = hue_to_rgb(hue)
        hue += step
        if hue > 0.999:
            step /= 2
            hue = step / 2
    return palette


def visible_periods(histogram: PeriodHistogram, threshold: float = VISIBILITY_THRESHOLD) -> List[int]:
    """Periods >= 1 whose density exceeds ``threshold``, rarest first."""
    densities = histogram.densities
    periods = [p for p in range(1, len(densities)) if densities[p] > threshold]
    return sorted(periods, key=lambda p: (densities[p], p))


def allocate_slots(periods: Sequence[int], slots: int = SLOTS) -> List[int]:
    """
    Spread ``slots`` over ``periods`` (given rarest first) as evenly as possible.
    The leftover slots go to the rarest periods, one each.
    """
    if not periods:
        return []
    base, extra = divmod(slots, len(periods))
    assignments = []
    for i, period in enumerate(periods):
        assignments.extend([period] * (base + (1 if i < extra else 0)))
    return assignments


def qualifies(series: np.ndarray, period: int) -> bool:
    """
    Whether a cell's time series is a fair example of ``period``: occupied at
    generation 0 for period 1, otherwise periodic at ``period`` and at no
    smaller period.
    """
    if period == 1:
        return bool(series[0] != 0)
    if not 0 < period < len(series):
        return False
    if any(repeats(series, p) for p in range(1, period)):
        return False
    return repeats(series, period)


def select_positions(
    history: np.ndarray,
    assignments: Sequence[int],
    rng: np.random.Generator,
    max_attempts: int = MAX_ATTEMPTS,
) -> List[Optional[Position]]:
    """Rejection-sample one (y, x) per slot; a slot with no hit after ``max_attempts`` is None."""
    _, height, width = history.shape
    positions: List[Optional[Position]] = []
    for period in assignments:
        found = None
        for _ in range(max_attempts):
            y = int(rng.integers(0, height))
            x = int(rng.integers(0, width))
            if qualifies(history[:, y, x], period):
                found = (y, x)
                break
        if found is None:
            logger.warning("no cell with period %d after %d attempts, skipping slot", period, max_attempts)
        positions.append(found)
    return positions


def extract_clip(frame: np.ndarray, y: int, x: int, radius: int = CLIP_RADIUS) -> np.ndarray:
    """(2r+1) x (2r+1) window centred on (y, x), wrapping around the lattice edges."""
    offsets = np.arange(-radius, radius + 1)
    rows = (y + offsets) % frame.shape[0]
    cols = (x + offsets) % frame.shape[1]
    return frame[np.ix_(rows, cols)]


def state_indices(cells: np.ndarray, max_state: int) -> np.ndarray:
    """Map cell states to palette indices: empty -> background, max state -> foreground."""
    cells = cells.astype(np.int64)
    generated = FIRST_GENERATED + (cells - 1) % (PALETTE_SIZE - FIRST_GENERATED)
    indices = np.where(cells == max_state, FOREGROUND, generated)
    return np.where(cells == 0, BACKGROUND, indices).astype(np.uint8)


def compose_frames(
    history: np.ndarray,
    positions: Sequence[Optional[Position]],
    radius: int = CLIP_RADIUS,
    columns: int = COLUMNS,
) -> np.ndarray:
    """One contact sheet per generation: clips on a grid with 1-cell gridlines all round."""
    side = 2 * radius + 1
    rows = max(1, -(-len(positions) // columns))
    height = rows * (side + 1) + 1
    width = columns * (side + 1) + 1
    max_state = int(history.max()) if history.size else 0

    frames = np.full((len(history), height, width), BACKGROUND, dtype=np.uint8)
    for slot, position in enumerate(positions):
        top = 1 + (slot // columns) * (side + 1)
        left = 1 + (slot % columns) * (side + 1)
        if position is None:
            frames[:, top:top + side, left:left + side] = ACCENT
            continue
        y, x = position
        for g, frame in enumerate(history):
            frames[g, top:top + side, left:left + side] = state_indices(
                extract_clip(frame, y, x, radius), max_state
            )
    return frames


def atlas_path(root: Union[str, Path], bucket: str, score: float, parameters: Sequence[int]) -> Path:
    """captures/<bucket>/SCORE 01234.56 PARAMS 3-1-0-2.gif, naming the divisor and its table only."""
    values = list(parameters)
    values = values[:values[0] + 1]
    return Path(root) / bucket / f"SCORE {score:08.2f} PARAMS {format_parameters(values)}.gif"


def _discard(path: str):
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass


def save_atlas(frames: np.ndarray, path: Union[str, Path], duration: int = FRAME_DURATION):
    """
    Write frames as a looping palette-indexed GIF.

    The GIF is written under a hidden temporary name in the target directory
    and renamed into place, so a failed or interrupted write leaves no
    partial atlas behind.
    """
    if len(frames) == 0:
        raise ValueError("no frames to write")

    palette = build_palette().tobytes()
    images = []
    for frame in frames:
        img = Image.frombytes("P", (frame.shape[1], frame.shape[0]), np.ascontiguousarray(frame).tobytes())
        img.putpalette(palette)
        images.append(img)

    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=".part", dir=path.parent)
    except OSError as e:
        raise ArtifactWriteError(f"failed to write atlas {path}: {e}") from e

    try:
        with os.fdopen(fd, "wb") as f:
            images[0].save(
                f,
                format="GIF",
                save_all=True,
                append_images=images[1:],
                duration=duration,
                loop=0,
                optimize=False,
            )
        os.chmod(tmp, 0o644)
        os.replace(tmp, path)
    except OSError as e:
        _discard(tmp)
        raise ArtifactWriteError(f"failed to write atlas {path}: {e}") from e
    except BaseException:
        _discard(tmp)
        raise


def save_histogram_plot(histogram: PeriodHistogram, path: Union[str, Path], title: str = ""):
    """Bar chart of period densities."""
    if not HAS_MATPLOTLIB:
        raise ImportError("Matplotlib required for plots. Install with: pip install matplotlib")

    densities = histogram.densities
    fig, ax = plt.subplots(figsize=(8, 4))
    ax.bar(np.arange(len(densities)), densities, color="#00d4ff")
    ax.set_xlabel("period (0 = none found)")
    ax.set_ylabel("relative density")
    if title:
        ax.set_title(title)
    fig.tight_layout()
    try:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(path)
    except OSError as e:
        raise ArtifactWriteError(f"failed to write plot {path}: {e}") from e
    finally:
        plt.close(fig)


def encode_atlas(
    result: PeriodicityResult,
    path: Union[str, Path],
    rng: np.random.Generator,
    slots: int = SLOTS,
    radius: int = CLIP_RADIUS,
    threshold: float = VISIBILITY_THRESHOLD,
    max_attempts: int = MAX_ATTEMPTS,
    duration: int = FRAME_DURATION,
) -> Optional[Path]:
    """
    Select representative cells from a scoring pass and write the atlas.

    Returns the written path, or None when no period is dense enough to show.
    """
    periods = visible_periods(result.histogram, threshold)
    if not periods:
        logger.info("nothing above the visibility threshold, no atlas written")
        return None

    assignments = allocate_slots(periods, slots)
    positions = select_positions(result.history, assignments, rng, max_attempts)
    frames = compose_frames(result.history, positions, radius)
    save_atlas(frames, path, duration)
    logger.info("wrote %s", path)
    return Path(path)

