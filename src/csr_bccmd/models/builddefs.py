"""Firmware build definitions and chip revision names."""

from __future__ import annotations

BUILD_DEFINITIONS: dict[int, str] = {
    0x0000: "NONE",
    0x0001: "CHIP_BASE_BC01",
    0x0002: "CHIP_BASE_BC02",
    0x0003: "CHIP_BC01B",
    0x0004: "CHIP_BC02_EXTERNAL",
    0x0005: "BUILD_HCI",
    0x0006: "BUILD_RFCOMM",
    0x0007: "BT_VER_1_1",
    0x0008: "TRANSPORT_ALL",
    0x0009: "TRANSPORT_BCSP",
    0x000A: "TRANSPORT_H4",
    0x000B: "TRANSPORT_USB",
    0x000C: "MAX_CRYPT_KEY_LEN_56",
    0x000D: "MAX_CRYPT_KEY_LEN_128",
    0x000E: "TRANSPORT_USER",
    0x000F: "CHIP_BC02_KATO",
    0x0010: "TRANSPORT_NONE",
    0x0012: "REQUIRE_8MBIT",
    0x0013: "RADIOTEST",
    0x0014: "RADIOTEST_LITE",
    0x0015: "INSTALL_FLASH",
    0x0016: "INSTALL_EEPROM",
    0x0017: "INSTALL_COMBO_DOT11",
    0x0018: "LOWPOWER_TX",
    0x0019: "TRANSPORT_TWUTL",
    0x001A: "COMPILER_GCC",
    0x001B: "CHIP_BC02_CLOUSEAU",
    0x001C: "CHIP_BC02_TOULOUSE",
    0x001D: "CHIP_BASE_BC3",
    0x001E: "CHIP_BC3_NICKNACK",
    0x001F: "CHIP_BC3_KALIMBA",
    0x0020: "INSTALL_HCI_MODULE",
    0x0021: "INSTALL_L2CAP_MODULE",
    0x0022: "INSTALL_DM_MODULE",
    0x0023: "INSTALL_SDP_MODULE",
    0x0024: "INSTALL_RFCOMM_MODULE",
    0x0025: "INSTALL_HIDIO_MODULE",
    0x0026: "INSTALL_PAN_MODULE",
    0x0027: "INSTALL_IPV4_MODULE",
    0x0028: "INSTALL_IPV6_MODULE",
    0x0029: "INSTALL_TCP_MODULE",
    0x002A: "BT_VER_1_2",
    0x002B: "INSTALL_UDP_MODULE",
    0x002C: "REQUIRE_0_WAIT_STATES",
    0x002D: "CHIP_BC3_PADDYWACK",
    0x002E: "CHIP_BC4_COYOTE",
    0x002F: "CHIP_BC4_ODDJOB",
    0x0030: "TRANSPORT_H4DS",
    0x0031: "CHIP_BASE_BC4",
}

CHIP_REVISIONS: dict[int, str] = {
    0x64: "BC1 ES",
    0x65: "BC1",
    0x89: "BC2-External A",
    0x8A: "BC2-External B",
    0x28: "BC2-ROM",
    0x43: "BC3-Multimedia",
    0x15: "BC3-ROM",
    0xE2: "BC3-Flash",
    0x26: "BC4-External",
    0x30: "BC4-ROM",
}


def builddef_name(builddef: int) -> str:
    return BUILD_DEFINITIONS.get(builddef, "UNKNOWN")


def chiprev_name(rev: int) -> str:
    return CHIP_REVISIONS.get(rev, "NA")
