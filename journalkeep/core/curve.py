"""
journalkeep/core/curve.py

Ed25519 point-decoding test (RFC 8032, section 5.1.3).

A derived address is only usable when it is NOT a valid compressed
Ed25519 point: a 32-byte string that decodes to a curve point could be
the public key of somebody's private key, and that somebody could then
sign for the slot directly.

The cryptography package loads raw public keys without validating that
they decode, so the check is done here with plain integer arithmetic.
"""

P       = 2 ** 255 - 19
D       = (-121665 * pow(121666, P - 2, P)) % P
SQRT_M1 = pow(2, (P - 1) // 4, P)

_Y_MASK = (1 << 255) - 1


def is_on_curve(point: bytes) -> bool:
    """
    True iff point is the canonical encoding of an Ed25519 curve point.

    Follows the RFC 8032 decoding steps: recover y, solve
    x^2 = (y^2 - 1) / (d*y^2 + 1), and check a square root exists.
    """
    if len(point) != 32:
        return False

    encoded = int.from_bytes(point, "little")
    x_sign  = encoded >> 255
    y       = encoded & _Y_MASK
    if y >= P:
        return False

    y2 = y * y % P
    u  = (y2 - 1) % P
    v  = (D * y2 + 1) % P
    x2 = u * pow(v, P - 2, P) % P

    if x2 == 0:
        # x = 0 has no negative counterpart
        return x_sign == 0

    x = pow(x2, (P + 3) // 8, P)
    if (x * x - x2) % P != 0:
        x = x * SQRT_M1 % P
        if (x * x - x2) % P != 0:
            return False
    return True
