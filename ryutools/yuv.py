"""Conversions between packed BGR(A) bitmaps and planar I420 (YUV 4:2:0) images."""

from __future__ import annotations

from typing import Optional, Sequence, Union

BytesLike = Union[bytes, bytearray, memoryview]

_YC = tuple(298 * (i - 16) for i in range(256))
_UCG = tuple(-100 * (i - 128) for i in range(256))
_UCB = tuple(516 * (i - 128) for i in range(256))
_VCR = tuple(409 * (i - 128) for i in range(256))
_VCG = tuple(-208 * (i - 128) for i in range(256))


def clip(value: int) -> int:
    """Clamp ``value`` to the byte range 0..255."""
    if value < 0:
        return 0
    if value > 255:
        return 255
    return value


def _luma(b: int, g: int, r: int) -> int:
    return (30 * r + 59 * g + 11 * b) // 100


def _chroma(b: int, g: int, r: int) -> tuple[int, int]:
    u = (-17 * r - 33 * g + 50 * b + 12800) // 100
    v = (50 * r - 42 * g - 8 * b + 12800) // 100
    return u, v


def rgb_to_yuv420(rgb: BytesLike, width: int, height: int, pixel_size: int = 4) -> bytes:
    """Convert a packed bitmap (bytes in B, G, R order per pixel) to I420.

    The result holds the Y plane, then the U plane, then the V plane, each
    chroma plane at half width and half height. Every chroma sample takes its
    value from the lower-right pixel of its 2x2 block. Width and height must
    be even.
    """
    if width < 0 or height < 0:
        raise ValueError("width and height must not be negative")
    if width % 2 or height % 2:
        raise ValueError("width and height must be even")
    if pixel_size < 3:
        raise ValueError("pixel_size must be at least 3")

    data = bytes(rgb)
    row_bytes = width * pixel_size
    if len(data) < row_bytes * height:
        raise ValueError(
            f"bitmap holds {len(data)} bytes, {row_bytes * height} are needed"
        )

    y_plane = bytearray()
    u_plane = bytearray()
    v_plane = bytearray()

    for row in range(height):
        line = data[row * row_bytes:(row + 1) * row_bytes]
        pixels = [
            (line[pos], line[pos + 1], line[pos + 2])
            for pos in range(0, row_bytes, pixel_size)
        ]
        y_plane.extend(_luma(*pixel) for pixel in pixels)
        if row % 2 == 1:
            for pixel in pixels[1::2]:
                u, v = _chroma(*pixel)
                u_plane.append(u)
                v_plane.append(v)

    return bytes(y_plane + u_plane + v_plane)


def _require(name: str, plane: Optional[Sequence[int]], needed: int) -> None:
    if plane is None:
        raise ValueError(f"{name} plane is missing")
    if len(plane) < needed:
        raise ValueError(f"{name} plane holds {len(plane)} bytes, {needed} are needed")


def i420_to_argb(
    src_y: Optional[BytesLike],
    stride_y: int,
    src_u: Optional[BytesLike],
    stride_u: int,
    src_v: Optional[BytesLike],
    stride_v: int,
    dst_stride: int,
    width: int,
    height: int,
) -> bytearray:
    """Convert I420 planes to a 32-bit bitmap laid out B, G, R, A per pixel.

    Rows of the result are ``dst_stride`` bytes apart. The alpha bytes are
    not written and stay zero. Two rows and two columns are converted at a
    time, sharing one chroma sample.
    """
    if width < 0 or height < 0:
        raise ValueError("width and height must not be negative")

    half_width = (width + 1) >> 1
    half_height = (height + 1) >> 1

    y_step = 2 * half_width + 2 * stride_y - width
    out_step = 8 * half_width + dst_stride

    if half_width and half_height:
        last = half_height - 1
        _require("Y", src_y, last * y_step + stride_y + 2 * half_width)
        _require("U", src_u, last * stride_u + half_width)
        _require("V", src_v, last * stride_v + half_width)
        needed = last * out_step + dst_stride + 8 * half_width - 1
    else:
        for name, plane in (("Y", src_y), ("U", src_u), ("V", src_v)):
            _require(name, plane, 0)
        needed = 0

    out = bytearray(max(height * dst_stride, needed))
    if not needed:
        return out

    y_data = bytes(src_y)
    u_data = bytes(src_u)
    v_data = bytes(src_v)

    for pair in range(half_height):
        y1 = pair * y_step
        y2 = y1 + stride_y
        u_base = pair * stride_u
        v_base = pair * stride_v
        out1 = pair * out_step
        out2 = out1 + dst_stride

        for col in range(half_width):
            u = u_data[u_base + col]
            v = v_data[v_base + col]
            red = _VCR[v]
            green = _UCG[u] + _VCG[v]
            blue = _UCB[u]

            for src, dst in (
                (y1 + 2 * col, out1 + 8 * col),
                (y1 + 2 * col + 1, out1 + 8 * col + 4),
                (y2 + 2 * col, out2 + 8 * col),
                (y2 + 2 * col + 1, out2 + 8 * col + 4),
            ):
                luma = _YC[y_data[src]]
                out[dst] = clip((luma + blue + 128) >> 8)
                out[dst + 1] = clip((luma + green + 128) >> 8)
                out[dst + 2] = clip((luma + red + 128) >> 8)

    return out