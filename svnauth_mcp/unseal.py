"""Password unsealing for svn.simple credentials.

The parser hands over the raw `password` value untouched. How it is sealed
depends on the `passtype` key Subversion writes next to it:

    wincrypt  base64 of a DPAPI blob bound to the current Windows user
    simple    plaintext

Other passtypes (keychain, gnome-keyring, kwallet, gpg-agent) keep the
secret outside the file, so there is nothing to unseal here.
"""

from __future__ import annotations

import base64
import binascii
import ctypes
import sys
from abc import ABC, abstractmethod
from typing import Optional


class UnsealError(RuntimeError):
    """Raised when a stored password cannot be recovered."""


class SecretUnsealer(ABC):
    """Turns the stored password string into plaintext."""

    @abstractmethod
    def unseal(self, ciphertext: str) -> str:
        """Return the plaintext or raise UnsealError."""


class PlaintextUnsealer(SecretUnsealer):
    def unseal(self, ciphertext: str) -> str:
        return ciphertext


class _DataBlob(ctypes.Structure):
    _fields_ = [
        ('cbData', ctypes.c_uint32),
        ('pbData', ctypes.POINTER(ctypes.c_char)),
    ]


class DpapiUnsealer(SecretUnsealer):
    """CryptUnprotectData via ctypes; only works for the user who sealed it."""

    def unseal(self, ciphertext: str) -> str:
        if sys.platform != 'win32':
            raise UnsealError('DPAPI is only available on Windows')
        try:
            raw = base64.b64decode(ciphertext.strip(), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise UnsealError('password is not valid base64') from exc
        crypt32 = ctypes.windll.crypt32  # type: ignore[attr-defined]
        kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]
        buf = ctypes.create_string_buffer(raw, len(raw))
        blob_in = _DataBlob(len(raw), ctypes.cast(buf, ctypes.POINTER(ctypes.c_char)))
        blob_out = _DataBlob()
        ok = crypt32.CryptUnprotectData(
            ctypes.byref(blob_in), None, None, None, None, 0, ctypes.byref(blob_out)
        )
        if not ok:
            raise UnsealError(f'CryptUnprotectData failed (winerror {ctypes.GetLastError()})')
        try:
            plain = ctypes.string_at(blob_out.pbData, blob_out.cbData)
        finally:
            kernel32.LocalFree(blob_out.pbData)
        try:
            return plain.decode('utf-8')
        except UnicodeDecodeError as exc:
            raise UnsealError('decrypted password is not UTF-8') from exc


def unsealer_for(passtype: Optional[str]) -> SecretUnsealer:
    """Pick the unsealer for a credential's passtype.

    A missing passtype is treated as wincrypt on Windows (old TortoiseSVN
    files omit it) and as plaintext elsewhere.
    """
    kind = (passtype or '').strip().lower()
    if not kind:
        kind = 'wincrypt' if sys.platform == 'win32' else 'simple'
    if kind == 'wincrypt':
        return DpapiUnsealer()
    if kind == 'simple':
        return PlaintextUnsealer()
    raise UnsealError(f'passtype {kind!r} keeps the password outside the auth file')
