"""Per-method row kernels.

Every kernel fills rows [start, stop) of a preallocated (H, W, 3) output
from a 2-D mosaic. Pixels are handled in four parity classes; within a class
each output channel comes from the same estimator, so the work is a handful
of strided numpy assignments per row block.

Integer images are processed in int64: means of neighbours truncate, and
weighted results are clipped to the element range before truncation.
Float images are processed in float64 and never clipped.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from typing import Any

import numpy as np
from numpy.typing import NDArray

from skyframe.colorspace import BayerPattern, Channel

__all__ = ["fill_none", "fill_nearest", "fill_linear", "fill_cubic", "Kernel"]

Kernel = Callable[..., None]


def _classes(
    pattern: BayerPattern, start: int
) -> Iterator[tuple[int, int, slice, slice, Channel]]:
    # Row slices are relative to the block starting at absolute row `start`
    for py in (0, 1):
        for px in (0, 1):
            yield (
                px,
                py,
                slice((py - start) % 2, None, 2),
                slice(px, None, 2),
                pattern.color_at(px, py),
            )


def _mean(arrays: Sequence[NDArray[Any]]) -> NDArray[Any]:
    total = arrays[0].copy()
    for a in arrays[1:]:
        total += a
    if total.dtype.kind == "f":
        return total / len(arrays)
    return total // len(arrays)


def _weighted(
    terms: Sequence[tuple[NDArray[Any], int]], divisor: int
) -> NDArray[Any]:
    total = terms[0][0] * terms[0][1]
    for values, weight in terms[1:]:
        total = total + values * weight
    if total.dtype.kind == "f":
        return total / divisor
    return np.clip(total, 0, None) // divisor


def _store(
    block: NDArray[Any],
    rs: slice,
    cs: slice,
    channel: int,
    values: NDArray[Any],
    top: int | None,
) -> None:
    if top is not None:
        values = np.clip(values, 0, top)
    block[rs, cs, channel] = values.astype(block.dtype, copy=False)


def _shifter(
    padded: NDArray[Any], pad: int, start: int, stop: int, width: int
) -> Callable[[int, int], NDArray[Any]]:
    def at(dy: int, dx: int) -> NDArray[Any]:
        return padded[pad + start + dy : pad + stop + dy, pad + dx : pad + width + dx]

    return at


def fill_none(
    src: NDArray[Any],
    pattern: BayerPattern,
    out: NDArray[Any],
    start: int,
    stop: int,
    **_: Any,
) -> None:
    """Copy each sample into its own channel; leave the others at zero."""
    block = out[start:stop]
    rows = src[start:stop]
    block[...] = 0
    for _px, _py, rs, cs, own in _classes(pattern, start):
        block[rs, cs, own] = rows[rs, cs]


def fill_nearest(
    src: NDArray[Any],
    pattern: BayerPattern,
    out: NDArray[Any],
    start: int,
    stop: int,
    **_: Any,
) -> None:
    """Fill missing colors from the left/upper neighbours.

    Candidates are tried in the order (x, y), (nx, y), (x, ny), (nx, ny)
    where nx = x - 1 and ny = y - 1, except that column 0 and row 0 use
    neighbour 1. The first candidate with the wanted color wins.
    """
    width = src.shape[1]
    cols = np.arange(width)
    ncols = np.where(cols > 0, cols - 1, 1)
    rows = np.arange(start, stop)
    nrows = np.where(rows > 0, rows - 1, 1)

    for px, py, rs, cs, _own in _classes(pattern, start):
        own_rows, near_rows = rows[rs], nrows[rs]
        own_cols, near_cols = cols[cs], ncols[cs]
        if own_rows.size == 0 or own_cols.size == 0:
            continue
        for channel in Channel:
            for use_x, use_y in ((0, 0), (1, 0), (0, 1), (1, 1)):
                if pattern.color_at(px + use_x, py + use_y) is channel:
                    break
            src_rows = near_rows if use_y else own_rows
            src_cols = near_cols if use_x else own_cols
            out[own_rows[:, None], own_cols[None, :], channel] = src[
                src_rows[:, None], src_cols[None, :]
            ]


def fill_linear(
    src: NDArray[Any],
    pattern: BayerPattern,
    out: NDArray[Any],
    start: int,
    stop: int,
    *,
    padded: NDArray[Any],
    top: int | None,
) -> None:
    """Bilinear interpolation over a 1-pixel reflect border.

    Green at red/blue sites is the mean of the 4 orthogonal neighbours. At
    green sites the color of the horizontal neighbours is their mean, the
    other color the mean of the vertical neighbours. Red at blue sites (and
    blue at red) is the mean of the 4 diagonals.
    """
    at = _shifter(padded, 1, start, stop, src.shape[1])
    up, down, left, right = at(-1, 0), at(1, 0), at(0, -1), at(0, 1)
    centre = at(0, 0)
    orthogonal = _mean([up, down, left, right])
    diagonal = _mean([at(-1, -1), at(-1, 1), at(1, -1), at(1, 1)])
    horizontal = _mean([left, right])
    vertical = _mean([up, down])

    block = out[start:stop]
    for px, py, rs, cs, own in _classes(pattern, start):
        beside = pattern.color_at(px + 1, py)
        for channel in Channel:
            if channel is own:
                estimate = centre
            elif own is not Channel.GREEN:
                estimate = orthogonal if channel is Channel.GREEN else diagonal
            else:
                estimate = horizontal if channel is beside else vertical
            _store(block, rs, cs, channel, estimate[rs, cs], top)


def fill_cubic(
    src: NDArray[Any],
    pattern: BayerPattern,
    out: NDArray[Any],
    start: int,
    stop: int,
    *,
    padded: NDArray[Any],
    top: int | None,
) -> None:
    """Cubic interpolation over a 3-pixel reflect border.

    Each estimate combines the near ring of same-color neighbours (weight
    324), the far ring at distance 3 (weight 4) and the cross ring between
    them (weight -72), divided by 256. At green sites the 1-D kernel
    (18 * near - 2 * far) / 16 runs horizontally or vertically.
    """
    at = _shifter(padded, 3, start, stop, src.shape[1])
    centre = at(0, 0)

    green = _weighted(
        [
            (_mean([at(-1, 0), at(0, -1), at(0, 1), at(1, 0)]), 324),
            (_mean([at(-3, 0), at(0, -3), at(0, 3), at(3, 0)]), 4),
            (
                _mean(
                    [
                        at(-2, -1),
                        at(-2, 1),
                        at(-1, -2),
                        at(-1, 2),
                        at(1, -2),
                        at(1, 2),
                        at(2, -1),
                        at(2, 1),
                    ]
                ),
                -72,
            ),
        ],
        256,
    )
    diagonal = _weighted(
        [
            (_mean([at(-1, -1), at(-1, 1), at(1, -1), at(1, 1)]), 324),
            (_mean([at(-3, -3), at(-3, 3), at(3, -3), at(3, 3)]), 4),
            (
                _mean(
                    [
                        at(-3, -1),
                        at(-3, 1),
                        at(-1, -3),
                        at(-1, 3),
                        at(1, -3),
                        at(1, 3),
                        at(3, -1),
                        at(3, 1),
                    ]
                ),
                -72,
            ),
        ],
        256,
    )
    horizontal = _weighted(
        [(_mean([at(0, -1), at(0, 1)]), 18), (_mean([at(0, -3), at(0, 3)]), -2)], 16
    )
    vertical = _weighted(
        [(_mean([at(-1, 0), at(1, 0)]), 18), (_mean([at(-3, 0), at(3, 0)]), -2)], 16
    )

    block = out[start:stop]
    for px, py, rs, cs, own in _classes(pattern, start):
        beside = pattern.color_at(px + 1, py)
        for channel in Channel:
            if channel is own:
                estimate = centre
            elif own is not Channel.GREEN:
                estimate = green if channel is Channel.GREEN else diagonal
            else:
                estimate = horizontal if channel is beside else vertical
            _store(block, rs, cs, channel, estimate[rs, cs], top)
