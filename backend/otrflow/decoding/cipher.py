"""
Blowfish primitives in the byte order used by the recording service.

The service's encoder reads each 8-byte block as two little-endian 32-bit
words. Standard Blowfish (as implemented by pycryptodome) reads big-endian
words, so every block is word-swapped before and after the cipher call.
The key schedule is identical in both byte orders.

This module is the single place where the cipher is touched. A correction
to the compatibility constants of the container format belongs here or in
container.py / keys.py, never in the pipeline.
"""

from Crypto.Cipher import Blowfish

BLOCK_SIZE = 8


def _swap_words(data: bytes) -> bytes:
    """Reverse the byte order of every 32-bit word in data (len must be a multiple of 4)."""
    out = bytearray(len(data))
    out[0::4] = data[3::4]
    out[1::4] = data[2::4]
    out[2::4] = data[1::4]
    out[3::4] = data[0::4]
    return bytes(out)


def aligned_length(length: int) -> int:
    """Largest multiple of BLOCK_SIZE not exceeding length."""
    return length - (length % BLOCK_SIZE)


def ecb_decrypt(key: bytes, data: bytes) -> bytes:
    """
    Decrypt data with Blowfish-LE in ECB mode.

    Only full blocks are decrypted. A trailing remainder shorter than
    BLOCK_SIZE is returned unchanged, exactly as the service's encoder
    leaves it.

    Args:
        key: Raw key bytes (4..56 bytes)
        data: Encrypted bytes

    Returns:
        Decrypted bytes of the same length
    """
    cut = aligned_length(len(data))
    if cut == 0:
        return bytes(data)
    cipher = Blowfish.new(key, Blowfish.MODE_ECB)
    plain = _swap_words(cipher.decrypt(_swap_words(data[:cut])))
    return plain + bytes(data[cut:])


def ecb_encrypt(key: bytes, data: bytes) -> bytes:
    """Inverse of ecb_decrypt (used to build containers and request payloads)."""
    cut = aligned_length(len(data))
    if cut == 0:
        return bytes(data)
    cipher = Blowfish.new(key, Blowfish.MODE_ECB)
    sealed = _swap_words(cipher.encrypt(_swap_words(data[:cut])))
    return sealed + bytes(data[cut:])


def cbc_encrypt(key: bytes, iv: bytes, data: bytes) -> bytes:
    """
    Encrypt data with Blowfish-LE in CBC mode.

    CBC chaining works on whole blocks, so swapping the words of the
    plaintext, the IV and the ciphertext is equivalent to running CBC
    on little-endian words.
    """
    if len(data) % BLOCK_SIZE != 0:
        raise ValueError(f"CBC payload must be a multiple of {BLOCK_SIZE} bytes")
    cipher = Blowfish.new(key, Blowfish.MODE_CBC, iv=_swap_words(iv))
    return _swap_words(cipher.encrypt(_swap_words(data)))


def cbc_decrypt(key: bytes, iv: bytes, data: bytes) -> bytes:
    """Inverse of cbc_encrypt."""
    if len(data) % BLOCK_SIZE != 0:
        raise ValueError(f"CBC payload must be a multiple of {BLOCK_SIZE} bytes")
    cipher = Blowfish.new(key, Blowfish.MODE_CBC, iv=_swap_words(iv))
    return _swap_words(cipher.decrypt(_swap_words(data)))
