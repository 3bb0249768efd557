#!/usr/bin/env python3
"""
libcastgen: Generate the Huff integer casting library (src/libcast.huff).

Design goals:
- Deterministic output (no timestamps, fixed width order)
- One in-memory document, written with a single call
- Python stdlib only

For every width in 8..256 (step 8) the library gets a `<T>_MASK` constant,
a checked `TO_<T>` cast that reverts with `Overflow()`, and from 32 bits up
a `MINI_<T>_MASK` / `UNSAFE_MINI_TO_<T>` pair that computes the mask at
expansion time through the shared `__MINI_MASK(bitsize)` helper.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple


INT_SIZES: Tuple[int, ...] = tuple(range(8, 257, 8))

MIN_SIZE = 8
MAX_SIZE = 256
MINI_MIN_SIZE = 32  # smallest width with MINI_ variants

OUTPUT_PATH = Path("src/libcast.huff")

PH_TYPENAME = "TYPENAME"
PH_TYPEMASK = "TYPEMASK"
PH_TYPESIZE = "TYPESIZE"


class CastGenError(RuntimeError):
    pass


@dataclass(frozen=True)
class CastWidth:
    width: int
    type_name: str
    mask: str
    include_mini: bool


HEADER = """
//  ------------------------------------------------------------------------------------------------
//! # Casting Library
//! 
//! Provides macros for casting values.
//! 
//! Bit sizes supported range from 8 to 256 inclusive and are multiples of 8.
//! 
//! Items prefixed with `UNSAFE_` will not revert on overflow.
//! 
//! Items prefixed with `MINI_` will consume more runtime gas to the benefit of a smaller runtime
//! size.
//! 
//! ## API
//! 
//! For a given type, `TYPENAME`:
//! 
//! - `TYPENAME_MASK` - Used to downcast a value to a smaller type.
//! - `TO_TYPENAME` - Downcasts a value to a smaller type.
//! - `UNSAFE_TO_TYPENAME` - Downcasts a value to a smaller type.
//! - `MINI_TYPENAME_MASK` - Used to downcast a value to a smaller type.
//! - `MINI_TO_TYPENAME` - Downcasts a value to a smaller type.
//! - `UNSAFE_MINI_TO_TYPENAME` - Downcasts a value to a smaller type.
//! 
"""

ERROR_DEFINITION = """
/// ## Overflow Error
/// 
/// Thrown when a cast overflows.
#define error Overflow()
"""

CAST_TEMPLATE = """
/// ## TYPENAME Mask
/// 
/// Used to downcast a value to a smaller type.
/// 
/// ### Usage
/// 
/// ```huff
/// #define macro MAIN() = takes (0) returns (0) {
///     0x00 calldataload
///     TYPENAME_MASK() and
/// }
/// ```
#define macro TYPENAME_MASK() = takes (0) returns (1) { TYPEMASK }

/// ## TYPENAME Cast
/// 
/// Downcasts a value to a smaller type.
/// 
/// The `UNSAFE_TO_TYPENAME` macro will not revert on overflow.
#define macro TO_TYPENAME() = takes (1) returns (1) {
    // takes:               // [value]
    dup1                    // [value, value]
    TYPENAME_MASK()         // [mask, value, value]
    and                     // [masked_value, value]
    dup2                    // [value, masked_value, value]
    eq                      // [is_safe, value]
    is_safe                 // [is_safe_dest, is_safe, value]
    jumpi                   // [value]
        __ERROR(Overflow)   // [err]
        0x00                // [ptr, err]
        mstore              // []
        0x04                // [err_len]
        0x00                // [ptr, err_len]
        revert              // []
    is_safe:                // [value]
}"""

MINI_CAST_TEMPLATE = """

/// ## Mini TYPENAME Mask
/// 
/// Used to downcast a value to a smaller type.
/// 
/// This consumes more runtime gas to the benefit of a smaller runtime size.
/// 
/// ### Usage
/// 
/// ```huff
/// #define macro MAIN() = takes (0) returns (0) {
///     0x00 calldataload
///     MINI_TYPENAME_MASK() and
/// }
/// ```
#define macro MINI_TYPENAME_MASK() = takes (0) returns (1) { __MINI_MASK(TYPESIZE) }

/// ## Mini TYPENAME Cast
/// 
/// Downcasts a value to a smaller type.
/// 
/// This consumes more runtime gas to the benefit of a smaller runtime size.
/// 
/// The `UNSAFE_MINI_TO_TYPENAME` macro will not revert on overflow.
#define macro UNSAFE_MINI_TO_TYPENAME() = takes (0) returns (0) {
    // takes:               // [value]
    MINI_TYPENAME_MASK()         // [mask, value]
    and                     // [masked_value]
}"""

MINI_MASK_HELPER = """
/// ## Mini Mask
///
/// Used as a utility to generate the mask
///
/// The macro body is functionally equivalent to the following: `2 ** bitsize - 1`
///
/// ### Template Arguments
///
/// - `bitsize` - The number of bits to generate a mask for.
///
/// ### Usage
///
/// ```huff
/// #define macro MINI_U32_MASK() = takes (0) returns (1) { __MINI_MASK(32)}
/// ```
#define macro __MINI_MASK(bitsize) = takes (0) returns (1) {
    0x01        // [one]
    dup1        // [one, one]
    <bitsize>   // [bisize, one, one]
    shl         // [mask_plus_one, one]
    sub         // [mask]
}
"""


def derive(width: int) -> CastWidth:
    if isinstance(width, bool) or not isinstance(width, int):
        raise CastGenError(f"width must be an int, got {type(width).__name__}")
    if width % 8 != 0 or not (MIN_SIZE <= width <= MAX_SIZE):
        raise CastGenError(f"width {width} is not a multiple of 8 in [{MIN_SIZE}, {MAX_SIZE}]")

    # Byte-aligned widths: every byte below the width is fully set.
    mask = "0x" + "ff" * (width // 8)
    return CastWidth(
        width=width,
        type_name=f"U{width}",
        mask=mask,
        include_mini=width >= MINI_MIN_SIZE,
    )


def substitute(template: str, replacements: Sequence[Tuple[str, str]]) -> str:
    """Replace every occurrence of each marker, in the order given."""
    out = template
    for marker, value in replacements:
        out = out.replace(marker, value)
    return out


def assemble(width: int, type_name: str, mask: str, include_mini: bool) -> str:
    replacements = (
        (PH_TYPENAME, type_name),
        (PH_TYPEMASK, mask),
        (PH_TYPESIZE, str(width)),
    )
    block = substitute(CAST_TEMPLATE, replacements)
    if not include_mini:
        return block
    return block + substitute(MINI_CAST_TEMPLATE, replacements)


def _check_order(widths: Sequence[int]) -> None:
    if not widths:
        raise CastGenError("no widths to generate")
    for prev, cur in zip(widths, widths[1:]):
        if cur == prev:
            raise CastGenError(f"duplicate width {cur}")
        if cur < prev:
            raise CastGenError(f"widths must be ascending: {prev} before {cur}")


def build(widths: Iterable[int] = INT_SIZES) -> str:
    widths = list(widths)
    _check_order(widths)

    blocks = []
    for width in widths:
        cast = derive(width)
        blocks.append(assemble(cast.width, cast.type_name, cast.mask, cast.include_mini))

    return HEADER + ERROR_DEFINITION + "\n".join(blocks) + MINI_MASK_HELPER


def write_document(path: Path, text: str) -> None:
    data = text.encode("utf-8")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as exc:
        raise CastGenError(f"cannot write {path.as_posix()}: {exc.strerror or exc}") from exc


def generate(out_path: Path = OUTPUT_PATH) -> Path:
    write_document(out_path, build(INT_SIZES))
    return out_path


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description=f"Generate the Huff casting library at {OUTPUT_PATH.as_posix()} (relative to the working directory)."
    )
    parser.parse_args(list(argv) if argv is not None else None)

    try:
        generate()
        return 0
    except CastGenError as exc:
        print(f"libcastgen.py: ERROR: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
