"""
수신자 태그 (Recipient Tags)
=============================

공개 신호 recipientTag는 정산 원장에서 대기 중인 송금의 키가 된다.

두 가지 방식:

  address  (기본값)
    0x + 40자리 16진 주소를 그대로 정수로 읽는다. 가역적이므로 태그만 보고도
    수신자 주소를 알 수 있다. 기존 클라이언트와의 호환을 위해 기본값으로 둔다.

  blinded  (선택)
    tag = H(address_int, blinding). 송신자가 blinding을 수신자에게 따로
    전달해야 하며, 수신자는 청구 시 (주소, blinding)을 제시해 태그를 연다.

어떤 방식을 쓸지는 설정(tag_scheme)으로 명시하며, 조용히 바뀌지 않는다.
"""

import re

from privtx.plonk.field import FR
from privtx.hashing import MiMCHash


TAG_SCHEMES = ("address", "blinded")

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_valid_address(address):
    return isinstance(address, str) and bool(_ADDRESS_RE.match(address))


def address_to_int(address):
    """0x 주소를 정수로 변환한다 (대소문자 무시).

    Raises:
        ValueError: 주소 형식이 잘못된 경우
    """
    if not is_valid_address(address):
        raise ValueError(f"잘못된 이더리움 주소 형식입니다: {address!r}")
    return int(address.lower(), 16)


def address_to_tag(address):
    """가역적 주소 태그: 주소의 정수 값 그대로."""
    return address_to_int(address)


def blinded_recipient_tag(address, blinding, hasher=None):
    """블라인드 태그: H(address_int, blinding)."""
    hasher = hasher or MiMCHash()
    return int(hasher(FR(address_to_int(address)), FR(blinding)))


def recipient_tag(address, scheme="address", blinding=None, hasher=None):
    """설정된 방식으로 수신자 태그를 계산한다.

    Raises:
        ValueError: 알 수 없는 방식이거나, blinded 방식에 blinding이 없을 때
    """
    if scheme == "address":
        return address_to_tag(address)
    if scheme == "blinded":
        if blinding is None:
            raise ValueError("blinded 태그 방식에는 recipientBlinding이 필요합니다")
        return blinded_recipient_tag(address, blinding, hasher)
    raise ValueError(f"알 수 없는 태그 방식입니다: {scheme!r}")


def opens_tag(tag, address, scheme="address", blinding=None, hasher=None):
    """(address, blinding)이 tag를 여는지 확인한다. 형식 오류는 False."""
    try:
        return recipient_tag(address, scheme, blinding, hasher) == int(tag)
    except ValueError:
        return False
