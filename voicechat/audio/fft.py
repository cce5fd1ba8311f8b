"""Radix-2 Cooley-Tukey FFT used for spectral analysis of capture buffers."""

import math
from functools import lru_cache

import numpy as np


def is_power_of_two(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0


def next_power_of_two(value: int) -> int:
    """Smallest power of two that is >= value (1 for non-positive input)."""
    v = max(1, int(value))
    return 1 << (v - 1).bit_length()


@lru_cache(maxsize=16)
def _bit_reversal_permutation(n: int) -> np.ndarray:
    bits = n.bit_length() - 1
    indices = np.arange(n)
    reversed_indices = np.zeros(n, dtype=np.int64)
    for bit in range(bits):
        reversed_indices |= ((indices >> bit) & 1) << (bits - 1 - bit)
    return reversed_indices


def forward(real: np.ndarray, imag: np.ndarray) -> None:
    """In-place forward DFT of ``real + 1j * imag``.

    Both arrays must be float numpy arrays of the same power-of-two length.
    The transform runs the bit-reversal pass first, then combines butterflies
    with block length doubling each pass. Within a pass the twiddle factor is
    advanced by complex multiplication rather than recomputed, while all
    blocks of the pass are processed together.

    Raises:
        ValueError: if the lengths differ or are not a power of two
    """
    n = len(real)
    if n != len(imag):
        raise ValueError("Real and imaginary arrays must be the same size")
    if not is_power_of_two(n):
        raise ValueError(f"Size must be power of two, got {n}")

    permutation = _bit_reversal_permutation(n)
    real[:] = real[permutation]
    imag[:] = imag[permutation]

    length = 2
    while length <= n:
        half = length // 2
        theta = -2.0 * math.pi / length
        w_cos = math.cos(theta)
        w_sin = math.sin(theta)
        wr, wi = 1.0, 0.0
        for k in range(half):
            even = slice(k, n, length)
            odd = slice(k + half, n, length)

            odd_real = wr * real[odd] - wi * imag[odd]
            odd_imag = wr * imag[odd] + wi * real[odd]

            real[odd] = real[even] - odd_real
            imag[odd] = imag[even] - odd_imag
            real[even] += odd_real
            imag[even] += odd_imag

            wr, wi = wr * w_cos - wi * w_sin, wr * w_sin + wi * w_cos
        length *= 2


def inverse(real: np.ndarray, imag: np.ndarray) -> None:
    """In-place inverse DFT, scaled by 1/n."""
    n = len(real)
    if n != len(imag) or not is_power_of_two(n):
        raise ValueError(f"Inverse transform needs equal power-of-two sizes, got {n} and {len(imag)}")
    np.negative(imag, out=imag)
    forward(real, imag)
    np.negative(imag, out=imag)
    real /= n
    imag /= n
