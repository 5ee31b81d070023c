#!/usr/bin/env python3
"""evohome_listener - device addresses, as used in telegrams."""

from __future__ import annotations

from functools import lru_cache

from . import exceptions as exc
from .const import DEVICE_ID_REGEX, HGI_DEVICE_ID, NON_DEVICE_ID


class Address:
    """The device Address class."""

    def __init__(self, device_id: str) -> None:
        """Create an address from a valid device id."""

        if not self.is_valid(device_id):
            raise ValueError(f"Invalid device_id: {device_id}")

        self.id = device_id
        self.type = device_id[:2]  # dex
        self.num = device_id[3:]

    def __repr__(self) -> str:
        return str(self.id)

    def __str__(self) -> str:
        return self.id

    def __eq__(self, other: object) -> bool:
        if not hasattr(other, "id"):
            return NotImplemented
        return self.id == other.id  # type: ignore[no-any-return]

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def is_null(self) -> bool:
        return self.id == NON_DEVICE_ID

    @staticmethod
    def is_valid(value: str) -> bool:
        return isinstance(value, str) and bool(
            value == NON_DEVICE_ID or DEVICE_ID_REGEX.ANY.match(value)
        )


NON_DEV_ADDR = Address(NON_DEVICE_ID)
HGI_DEV_ADDR = Address(HGI_DEVICE_ID)


@lru_cache(maxsize=256)
def id_to_address(device_id: str) -> Address:
    """Return an Address (cached) for a device id."""
    return Address(device_id)


def hex_id_to_dev_id(device_hex: str) -> str:
    """Convert (say) '06368E' to '01:145038'."""

    if not device_hex.strip():  # aka '--:------'
        return NON_DEVICE_ID

    _tmp = int(device_hex, 16)
    return f"{(_tmp & 0xFC0000) >> 18:02d}:{_tmp & 0x03FFFF:06d}"


@lru_cache(maxsize=256)
def pkt_addrs(addr_fragment: str) -> tuple[Address, Address]:
    """Return the address fields from (e.g): '01:078710 --:------ 01:144246'.

    returns: src_addr, dst_addr

    Exactly one of the two trailing slots must be null, the other one being the
    (effective) destination. Will raise a PacketAddrSetInvalid if not.
    """

    try:
        addrs = tuple(id_to_address(addr_fragment[i : i + 9]) for i in range(0, 30, 10))
    except ValueError as err:
        raise exc.PacketAddrSetInvalid(
            f"Invalid address set: {addr_fragment}: {err}"
        ) from None

    if addrs[0].is_null or addrs[1].is_null == addrs[2].is_null:
        # .I --- 01:145038 --:------ 01:145038 1F09 003 FF073F  # valid
        # RQ --- 18:000730 01:145038 --:------ 0004 002 0100    # valid
        raise exc.PacketAddrSetInvalid(f"Invalid address set: {addr_fragment}")

    return addrs[0], addrs[2] if addrs[1].is_null else addrs[1]
