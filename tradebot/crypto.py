import base64
import os
from typing import Optional

from cryptography.hazmat.primitives import hashes, padding as sym_padding, serialization
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

# Публичный ключ вселенной Public (Steam)
STEAM_PUBLIC_KEY_DER_B64 = (
    "MIGdMA0GCSqGSIb3DQEBAQUAA4GLADCBhwKBgQDf7BrWLBBmLBc1OhSwfFkRf53T"
    "2Ct64+AVzRkeRuh7h3SiGEYxqQMUeYKO6UWiSRKpI2hzic9pobFhRr3Bvr/WARvY"
    "gdTckPv+T1JzZsuVcNfFjrocejN1oWI0Rrtgt4Bo+hOneoo3S57G9F1fOpn5nsQ6"
    "6WOiu4gZKODnFMBCiQIBEQ=="
)

SESSION_KEY_SIZE = 32


def load_public_key(pem_path: Optional[str] = None) -> RSAPublicKey:
    """Загружает публичный ключ платформы (встроенный или из PEM-файла)"""
    if pem_path:
        with open(pem_path, 'rb') as f:
            return serialization.load_pem_public_key(f.read())
    return serialization.load_der_public_key(base64.b64decode(STEAM_PUBLIC_KEY_DER_B64))


def generate_session_key() -> bytes:
    return os.urandom(SESSION_KEY_SIZE)


def rsa_encrypt(data: bytes, public_key: RSAPublicKey) -> bytes:
    """RSA-OAEP (SHA-1), как этого ожидает ISteamUserAuth"""
    return public_key.encrypt(
        data,
        padding.OAEP(
            mgf=padding.MGF1(algorithm=hashes.SHA1()),
            algorithm=hashes.SHA1(),
            label=None,
        ),
    )


def symmetric_encrypt(data: bytes, key: bytes) -> bytes:
    """
    AES-256 в формате Steam:
    первые 16 байт - IV, зашифрованный AES-ECB, дальше данные в AES-CBC с PKCS7
    """
    iv = os.urandom(16)

    ecb = Cipher(algorithms.AES(key), modes.ECB()).encryptor()
    encrypted_iv = ecb.update(iv) + ecb.finalize()

    padder = sym_padding.PKCS7(128).padder()
    padded = padder.update(data) + padder.finalize()

    cbc = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return encrypted_iv + cbc.update(padded) + cbc.finalize()
