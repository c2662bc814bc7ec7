#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
xorpals.py - hex/base64 codecs and a single-byte XOR breaker with frequency scoring
"""

import argparse
import concurrent.futures
import sys
from dataclasses import dataclass
from functools import reduce
from typing import List, Optional, Sequence, Tuple

from colorama import init as _init_colorama, Fore, Style

# ---------- Colors ----------
_init_colorama(autoreset=True)
BOLD = Style.BRIGHT; RESET = Style.RESET_ALL
CYAN, GREEN, YELLOW, RED = Fore.CYAN, Fore.GREEN, Fore.YELLOW, Fore.RED

def cCYN(s): return f"{BOLD}{CYAN}{s}{RESET}"
def cGRN(s): return f"{BOLD}{GREEN}{s}{RESET}"
def cYEL(s): return f"{BOLD}{YELLOW}{s}{RESET}"
def cRED(s): return f"{RED}{s}{RESET}"

def eprint(*a, **k): print(*a, file=sys.stderr, **k)

# ---------- Errors ----------
class CodecError(ValueError):
    """Base class for codec, XOR and corpus input errors."""

class MalformedInput(CodecError):
    """Hex text of odd length or with a character outside [0-9a-fA-F]."""
    def __init__(self, message: str, index: Optional[int] = None, char: Optional[str] = None):
        super().__init__(message)
        self.index = index
        self.char = char

class UnsupportedLength(MalformedInput):
    """Base64 input whose length is not a multiple of 3 (no padding support)."""

class LengthMismatch(CodecError):
    pass

class EmptyInput(CodecError):
    pass

class CheckFailed(AssertionError):
    pass

# ---------- Tables ----------
HEX_TABLE = "0123456789abcdef"
BASE64_TABLE = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_HEX_INDEX = {c: i for i, c in enumerate(HEX_TABLE)}
_HEX_INDEX.update({c.upper(): i for c, i in list(_HEX_INDEX.items()) if c.isalpha()})

# Most frequent English letters plus space, matched case-insensitively.
ENGLISH_CHARS = "ETAOIN SHRDLU"
_ENGLISH_BYTES = frozenset(ENGLISH_CHARS.encode() + ENGLISH_CHARS.lower().encode())

# ---------- Byte codec ----------
def decode_hex(s: str) -> bytes:
    """
    Decode a hex string, high nibble first.
    Raises MalformedInput on odd length or on the first non-hex character,
    carrying that character's index.
    """
    if len(s) % 2:
        raise MalformedInput("input length must be divisible by 2")
    out = bytearray()
    for i in range(0, len(s), 2):
        hi = _HEX_INDEX.get(s[i])
        if hi is None:
            raise MalformedInput(f"invalid hex character {s[i]!r} at index {i}", i, s[i])
        lo = _HEX_INDEX.get(s[i+1])
        if lo is None:
            raise MalformedInput(f"invalid hex character {s[i+1]!r} at index {i+1}", i + 1, s[i+1])
        out.append((hi << 4) | lo)
    return bytes(out)

def encode_hex(b: bytes) -> str:
    """Lowercase hex, two characters per byte."""
    return "".join(HEX_TABLE[x >> 4] + HEX_TABLE[x & 0x0F] for x in b)

def encode_base64(b: bytes) -> str:
    """Base64 without padding: the input must split into whole 3-byte groups."""
    if len(b) % 3:
        raise UnsupportedLength("input length must be divisible by 3")
    out = []
    for i in range(0, len(b), 3):
        b0, b1, b2 = b[i], b[i+1], b[i+2]
        out.append(BASE64_TABLE[b0 >> 2])
        out.append(BASE64_TABLE[((b0 & 0x03) << 4) | (b1 >> 4)])
        out.append(BASE64_TABLE[((b1 & 0x0F) << 2) | (b2 >> 6)])
        out.append(BASE64_TABLE[b2 & 0x3F])
    return "".join(out)

# ---------- Buffer XOR ----------
def xor_equal_length(a: bytes, b: bytes) -> bytes:
    if len(a) != len(b):
        raise LengthMismatch("buffers must be of equal length")
    return bytes(x ^ y for x, y in zip(a, b))

def xor_repeating_byte(s: bytes, key: int) -> bytes:
    """XOR every byte with key. Encrypts and decrypts alike."""
    if not 0 <= key <= 255:
        raise ValueError(f"key must be a single byte, got {key}")
    return bytes(x ^ key for x in s)

# ---------- Scoring ----------
def score_text(b: bytes) -> int:
    """
    Count bytes found in ETAOIN SHRDLU, either case. Not normalised by length,
    so longer buffers score higher.
    """
    return sum(1 for x in b if x in _ENGLISH_BYTES)

# ---------- Data classes ----------
@dataclass(frozen=True)
class Candidate:
    key: int
    score: int
    plaintext: bytes

@dataclass(frozen=True)
class ScoredLine:
    index: int
    line: str
    candidate: Candidate

    @property
    def key(self) -> int: return self.candidate.key
    @property
    def score(self) -> int: return self.candidate.score
    @property
    def plaintext(self) -> bytes: return self.candidate.plaintext

# ---------- Single-byte XOR breaker ----------
def _better_key(ciphertext: bytes):
    def step(best: Tuple[int, int], k: int) -> Tuple[int, int]:
        s = score_text(xor_repeating_byte(ciphertext, k))
        return (k, s) if s > best[1] else best
    return step

def break_single_byte_xor(ciphertext: bytes) -> Candidate:
    """
    Try all 256 keys and keep the best scoring decryption. Only a strictly
    higher score replaces the running best, so the lowest key wins ties.
    """
    key, score = reduce(_better_key(ciphertext), range(256), (0, 0))
    return Candidate(key, score, xor_repeating_byte(ciphertext, key))

def rank_keys(ciphertext: bytes, topn: int = 5) -> List[Candidate]:
    outs = []
    for k in range(256):
        pt = xor_repeating_byte(ciphertext, k)
        outs.append(Candidate(k, score_text(pt), pt))
    outs.sort(key=lambda c: (-c.score, c.key))
    return outs[:topn]

# ---------- Corpus selector ----------
def score_lines(lines: Sequence[str], workers: int = 1) -> List[ScoredLine]:
    """
    Break every line independently. All lines are decoded before any breaking
    starts, so one malformed line aborts the scan with no partial results.
    Results keep input order whatever the worker count.
    """
    lines = list(lines)
    raw: List[bytes] = []
    for n, line in enumerate(lines, 1):
        try:
            raw.append(decode_hex(line))
        except MalformedInput as e:
            raise MalformedInput(f"line {n}: {e}", e.index, e.char) from e

    if workers > 1 and len(raw) > 1:
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as pool:
            cands = list(pool.map(break_single_byte_xor, raw))
    else:
        cands = [break_single_byte_xor(r) for r in raw]
    return [ScoredLine(i, line, c) for i, (line, c) in enumerate(zip(lines, cands))]

def select_line(lines: Sequence[str], workers: int = 1, debug_on: bool = False) -> ScoredLine:
    """
    Find the line most likely to be single-byte XOR encrypted English.
    Highest score wins; on equal scores the earliest line is kept.
    """
    lines = list(lines)
    if not lines:
        raise EmptyInput("no candidate lines to scan")
    best: Optional[ScoredLine] = None
    for sl in score_lines(lines, workers=workers):
        if debug_on:
            eprint(cCYN(f"[line {sl.index + 1}] key=0x{sl.key:02x} score={sl.score}"))
        if best is None or sl.score > best.score:
            best = sl
    return best

# ---------- Line source ----------
def read_lines(path: str) -> List[str]:
    """Whole-file read split on newlines; a trailing newline yields a final empty line."""
    with open(path, "r", encoding="latin1", newline="") as f:
        data = f.read()
    return [line[:-1] if line.endswith("\r") else line for line in data.split("\n")]

# ---------- Checks ----------
CHALLENGE1_IN = "49276d206b696c6c696e6720796f757220627261696e206c696b65206120706f69736f6e6f7573206d757368726f6f6d"
CHALLENGE1_WANT = "SSdtIGtpbGxpbmcgeW91ciBicmFpbiBsaWtlIGEgcG9pc29ub3VzIG11c2hyb29t"
CHALLENGE2_A = "1c0111001f010100061a024b53535009181c"
CHALLENGE2_B = "686974207468652062756c6c277320657965"
CHALLENGE2_WANT = "746865206b696420646f6e277420706c6179"
CHALLENGE3_IN = "1b37373331363f78151b7f2b783431333d78397828372d363c78373e783a393b3736"
CHALLENGE3_WANT = "Cooking MC's like a pound of bacon"
CHALLENGE4_WANT = "Now that the party is jumping\n"
DEFAULT_CORPUS = "4.txt"

def _expect(got, want):
    if got != want:
        raise CheckFailed(f"got {got!r}, want {want!r}")

def challenge1():
    _expect(encode_base64(decode_hex(CHALLENGE1_IN)), CHALLENGE1_WANT)

def challenge2():
    x = decode_hex(CHALLENGE2_A)
    y = decode_hex(CHALLENGE2_B)
    _expect(encode_hex(xor_equal_length(x, y)), CHALLENGE2_WANT)

def challenge3():
    cand = break_single_byte_xor(decode_hex(CHALLENGE3_IN))
    _expect(cand.plaintext.decode("latin1"), CHALLENGE3_WANT)

def challenge4(path: str = DEFAULT_CORPUS, workers: int = 1, debug_on: bool = False):
    winner = select_line(read_lines(path), workers=workers, debug_on=debug_on)
    _expect(winner.plaintext.decode("latin1"), CHALLENGE4_WANT)

# ---------- Report ----------
@dataclass
class CheckResult:
    number: int
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

def print_result(n: int, error: Optional[Exception], color: bool = True):
    if error is None:
        msg = cGRN("OK") if color else "OK"
    else:
        msg = cRED(error) if color else str(error)
    print(f"Challenge {n}: {msg}")

def run_checks(corpus_path: str = DEFAULT_CORPUS, color: bool = True, workers: int = 1,
               debug_on: bool = False) -> List[CheckResult]:
    checks = [
        challenge1,
        challenge2,
        challenge3,
        lambda: challenge4(corpus_path, workers=workers, debug_on=debug_on),
    ]
    results: List[CheckResult] = []
    for n, check in enumerate(checks, 1):
        try:
            check()
            res = CheckResult(n)
        except Exception as e:
            res = CheckResult(n, e)
        print_result(n, res.error, color=color)
        results.append(res)
    return results

# ---------- Main ----------
def parse_key(v: str) -> int:
    try:
        k = int(v, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {v!r}")
    if not 0 <= k <= 255:
        raise argparse.ArgumentTypeError(f"key must be 0-255, got {k}")
    return k

def printable(b: bytes) -> str:
    return b.decode("latin1").encode("unicode_escape").decode("ascii")

def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(
        description="xorpals: hex/base64 codecs and a single-byte XOR breaker",
        add_help=False
    )
    mode = ap.add_mutually_exclusive_group()
    mode.add_argument("-c","--ciphertext", help="Hex ciphertext to break with a single-byte key")
    mode.add_argument("-f","--file", help="File of hex lines; find the one that is XOR encrypted")
    mode.add_argument("-e","--encrypt", help="Plaintext to encrypt with --key, printed as hex")
    ap.add_argument("-k","--key", type=parse_key, help="Single-byte key for --encrypt (e.g. 88 or 0x58)")
    ap.add_argument("-t","--top", type=int, default=0, help="-c only: also list the N best keys")
    ap.add_argument("-w","--workers", type=int, default=1, help="Worker threads for corpus scans")
    ap.add_argument("--corpus", default=DEFAULT_CORPUS, help="Corpus used by the built-in checks")
    ap.add_argument("-d","--debug", action="store_true", help="Show per-line and per-key scores on stderr")
    ap.add_argument("--no-color", action="store_true", help="Plain output")
    ap.add_argument("-h","--help", action="help", help="Show this help and exit")
    args = ap.parse_args(argv)

    color = not args.no_color
    yel = cYEL if color else str
    debug_on = args.debug

    if args.top and args.ciphertext is None:
        ap.error("--top only applies to -c/--ciphertext")

    if args.encrypt is not None:
        if args.key is None:
            ap.error("--encrypt requires --key")
        print(encode_hex(xor_repeating_byte(args.encrypt.encode(), args.key)))
        return 0

    try:
        if args.ciphertext is not None:
            raw = decode_hex(args.ciphertext.strip())
            cand = break_single_byte_xor(raw)
            if debug_on or args.top:
                for c in rank_keys(raw, max(args.top, 3)):
                    eprint(cCYN(f"[key 0x{c.key:02x}] score={c.score} {printable(c.plaintext)}"))
            print(f"Key       : 0x{cand.key:02x} ({cand.key})")
            print(f"Score     : {cand.score}")
            print(f"Plaintext : {printable(cand.plaintext)}")
            return 0

        if args.file is not None:
            lines = read_lines(args.file)
            winner = select_line(lines, workers=args.workers, debug_on=debug_on)
            print(f"Line      : {winner.index + 1} of {len(lines)}")
            print(f"Key       : 0x{winner.key:02x} ({winner.key})")
            print(f"Score     : {winner.score}")
            print(f"Plaintext : {printable(winner.plaintext)}")
            return 0
    except (CodecError, OSError) as e:
        print(yel(f"Error: {e}"))
        return 2

    print(cCYN("xorpals!") if color else "xorpals!")
    results = run_checks(args.corpus, color=color, workers=args.workers, debug_on=debug_on)
    return 0 if all(r.ok for r in results) else 1

def cli():
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted."); sys.exit(130)

if __name__ == "__main__":
    cli()
