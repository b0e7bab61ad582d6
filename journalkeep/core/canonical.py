"""
journalkeep/core/canonical.py

RFC 8785 (JCS) bytes of a transaction's signing dict. Signing and
verification both go through canonicalize(), so the bytes a signer saw
are the bytes a host checks.

RFC 8785: https://www.rfc-editor.org/rfc/rfc8785
"""

try:
    import jcs as _jcs
except ImportError as exc:
    raise ImportError(
        "journalkeep requires the 'jcs' package for RFC 8785 compliance.\n"
        "Install with: pip install jcs\n"
        f"Original error: {exc}"
    ) from exc


def canonicalize(obj: dict) -> bytes:
    """UTF-8 canonical JSON of obj; key order never changes the output."""
    return _jcs.canonicalize(obj)
