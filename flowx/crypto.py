from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


Point = Optional[tuple[int, int]]


@dataclass(frozen=True)
class Curve:
    name: str
    p: int
    n: int
    a: int
    b: int
    g: tuple[int, int]


SECP256K1 = Curve(
    name="secp256k1",
    p=0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F,
    n=0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141,
    a=0,
    b=7,
    g=(
        55066263022277343669578718895168534326250603453777594175500187360389116729240,
        32670510020758816978083085130507043184471273380659243275938904335757337482424,
    ),
)

P256 = Curve(
    name="P-256",
    p=0xFFFFFFFF00000001000000000000000000000000FFFFFFFFFFFFFFFFFFFFFFFF,
    n=0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551,
    a=0xFFFFFFFF00000001000000000000000000000000FFFFFFFFFFFFFFFFFFFFFFFC,
    b=0x5AC635D8AA3A93E7B3EBBD55769886BC651D06B0CC53B0F63BCE3C3E27D2604B,
    g=(
        0x6B17D1F2E12C4247F8BCE6E563A440F277037D812DEB33A0F4A13945D898C296,
        0x4FE342E2FE1A7F9B8EE7EB4A7C0F9E162BCE33576B315ECECBB6406837BF51F5,
    ),
)

CURVES = {
    "ECDSA_P256": P256,
    "ECDSA_secp256k1": SECP256K1,
}

PRIVATE_KEY_HEX_LENGTH = 64


def curve_for(sig_algo: str) -> Curve:
    try:
        return CURVES[sig_algo]
    except KeyError:
        raise ValueError(f"Unsupported signature algorithm: {sig_algo}") from None


def _mod_inv(value: int, modulus: int) -> int:
    return pow(value, -1, modulus)


def _is_on_curve(curve: Curve, point: Point) -> bool:
    if point is None:
        return True
    x, y = point
    return (y * y - (x * x * x + curve.a * x + curve.b)) % curve.p == 0


def _point_add(curve: Curve, p1: Point, p2: Point) -> Point:
    if p1 is None:
        return p2
    if p2 is None:
        return p1

    x1, y1 = p1
    x2, y2 = p2
    p = curve.p

    if x1 == x2 and (y1 + y2) % p == 0:
        return None

    if p1 == p2:
        slope = ((3 * x1 * x1 + curve.a) * _mod_inv((2 * y1) % p, p)) % p
    else:
        slope = ((y2 - y1) * _mod_inv((x2 - x1) % p, p)) % p

    x3 = (slope * slope - x1 - x2) % p
    y3 = (slope * (x1 - x3) - y1) % p
    point = (x3, y3)

    if not _is_on_curve(curve, point):
        raise ValueError("Point operation produced invalid curve point")
    return point


def _point_mul(curve: Curve, scalar: int, point: Point) -> Point:
    if scalar % curve.n == 0 or point is None:
        return None

    scalar = scalar % curve.n
    result: Point = None
    addend: Point = point

    while scalar:
        if scalar & 1:
            result = _point_add(curve, result, addend)
        addend = _point_add(curve, addend, addend)
        scalar >>= 1

    return result


def normalize_private_key_hex(private_key_hex: str) -> str:
    raw = str(private_key_hex).strip().lower()
    if raw.startswith("0x"):
        raw = raw[2:]
    if len(raw) != PRIVATE_KEY_HEX_LENGTH:
        raise ValueError(f"Private key must be {PRIVATE_KEY_HEX_LENGTH} hex characters")
    try:
        bytes.fromhex(raw)
    except ValueError as exc:
        raise ValueError("Private key must be hex encoded") from exc
    return raw


def validate_private_key(private_key_hex: str, sig_algo: str) -> str:
    curve = curve_for(sig_algo)
    normalized = normalize_private_key_hex(private_key_hex)
    if not 1 <= int(normalized, 16) < curve.n:
        raise ValueError(f"Invalid private key for {sig_algo}")
    return normalized


def private_key_to_public_key(private_key_hex: str, sig_algo: str) -> bytes:
    """Uncompressed public key as 64 bytes (x || y), the account key encoding."""
    curve = curve_for(sig_algo)
    private_key = int(validate_private_key(private_key_hex, sig_algo), 16)

    point = _point_mul(curve, private_key, curve.g)
    if point is None:
        raise ValueError("Could not derive public key")
    x, y = point
    return x.to_bytes(32, "big") + y.to_bytes(32, "big")
