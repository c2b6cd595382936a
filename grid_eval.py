# Sampling evaluators over rectangles of the complex plane, for plotting.
import logging
import time

import numpy as np

log = logging.getLogger(__name__)


def complex_grid(re_range, im_range, shape):
    """Return a `shape == (rows, cols)` grid of complex points.

    Laid out like an image: real parts grow left to right, imaginary parts
    shrink top to bottom.

    >>> complex_grid((-1, 1), (0, 2), (2, 3))
    array([[-1.+2.j,  0.+2.j,  1.+2.j],
           [-1.+0.j,  0.+0.j,  1.+0.j]])
    """
    if len(shape) != 2:
        raise ValueError(f"Expected a (rows, cols) shape, got {shape!r}")
    rows, cols = shape
    re_min, re_max = re_range
    im_min, im_max = im_range
    grid = np.empty((rows, cols), dtype=complex)
    grid.real = np.linspace(re_min, re_max, cols)[np.newaxis, :]
    grid.imag = np.linspace(im_max, im_min, rows)[:, np.newaxis]
    return grid


def sample(f, re_range, im_range, shape=(256, 256)):
    """Evaluate `f` on `complex_grid(re_range, im_range, shape)` in one call.

    `f` must accept an array, as the functions from `make_evaluator` do.
    """
    grid = complex_grid(re_range, im_range, shape)
    log.debug("sampling %s on a %dx%d grid", getattr(f, "__name__", f), *grid.shape)
    start = time.perf_counter()
    values = f(grid)
    if log.isEnabledFor(logging.DEBUG):
        log.debug("%s took %.4fs", getattr(f, "__name__", f), time.perf_counter() - start)
    return values


def polar_parts(values):
    """Modulus and principal argument of each sample (the two domain colouring channels)."""
    return np.abs(values), np.angle(values)
