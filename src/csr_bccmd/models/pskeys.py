"""PS key registry: symbolic names, descriptions, and declared value shapes.

A user token resolves to a key id in this order: ``0x``-prefixed
hexadecimal, a registered short alias or ``PSKEY_`` name (case-insensitive),
then plain decimal. Key 0x0000 is the end-of-enumeration sentinel and is
never a valid user key.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..exceptions import InvalidArgument, InvalidKeyToken

KEY_SENTINEL = 0x0000
MAX_KEY = 0xFFFF


class ValueType(Enum):
    """Declared value shape of a PS key."""

    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    ARRAY = "array"


@dataclass(frozen=True)
class PSKey:
    """A registered PS key."""

    id: int
    name: str
    description: str
    alias: str = ""
    type: ValueType | None = None
    size: int = 0  # bytes, for ARRAY keys

    @property
    def symbol(self) -> str:
        return f"PSKEY_{self.name}"

    @property
    def words(self) -> int | None:
        """Declared length in 16-bit words, if known."""
        if self.type in (ValueType.UINT8, ValueType.UINT16):
            return 1
        if self.type == ValueType.UINT32:
            return 2
        if self.type == ValueType.ARRAY:
            return self.size // 2
        return None


def _key(id: int, name: str, description: str, alias: str = "",
         type: ValueType | None = None, size: int = 0) -> PSKey:
    return PSKey(id, name, description, alias, type, size)


_U8, _U16, _U32, _ARR = ValueType.UINT8, ValueType.UINT16, ValueType.UINT32, ValueType.ARRAY

PS_KEYS: tuple[PSKey, ...] = (
    _key(0x0001, "BDADDR", "Bluetooth address", "bdaddr", _ARR, 8),
    _key(0x0002, "COUNTRYCODE", "Country code", "country", _U16),
    _key(0x0003, "CLASSOFDEVICE", "Class of device", "devclass", _U32),
    _key(0x0004, "DEVICE_DRIFT", "Device drift"),
    _key(0x0005, "DEVICE_JITTER", "Device jitter"),
    _key(0x000D, "MAX_ACLS", "Maximum ACL links"),
    _key(0x000E, "MAX_SCOS", "Maximum SCO links"),
    _key(0x000F, "MAX_REMOTE_MASTERS", "Maximum remote masters"),
    _key(0x0010, "ENABLE_MASTERY_WITH_SLAVERY",
         "Support master and slave roles simultaneously"),
    _key(0x0011, "H_HC_FC_MAX_ACL_PKT_LEN", "Maximum HCI ACL packet length"),
    _key(0x0012, "H_HC_FC_MAX_SCO_PKT_LEN", "Maximum HCI SCO packet length"),
    _key(0x0013, "H_HC_FC_MAX_ACL_PKTS", "Maximum number of HCI ACL packets"),
    _key(0x0014, "H_HC_FC_MAX_SCO_PKTS", "Maximum number of HCI SCO packets"),
    _key(0x0015, "LC_FC_BUFFER_LOW_WATER_MARK", "Flow control low level"),
    _key(0x0017, "LC_MAX_TX_POWER", "Maximum transmit power"),
    _key(0x001D, "TX_GAIN_RAMP", "Transmit gain ramp rate"),
    _key(0x001E, "LC_POWER_TABLE", "Radio power table"),
    _key(0x001F, "LC_PEER_POWER_PERIOD", "Peer transmit power control interval"),
    _key(0x0020, "LC_FC_POOLS_LOW_WATER_MARK", "Flow control pool low level"),
    _key(0x0021, "LC_DEFAULT_TX_POWER", "Default transmit power"),
    _key(0x0022, "LC_RSSI_GOLDEN_RANGE", "RSSI at bottom of golden receive range"),
    _key(0x0028, "LC_COMBO_DISABLE_PIO_MASK",
         "Combo: PIO lines and logic to disable transmit"),
    _key(0x0029, "LC_COMBO_PRIORITY_PIO_MASK",
         "Combo: priority activity PIO lines and logic"),
    _key(0x002A, "LC_COMBO_DOT11_CHANNEL_PIO_BASE",
         "Combo: 802.11b channel number base PIO line"),
    _key(0x002B, "LC_COMBO_DOT11_BLOCK_CHANNELS",
         "Combo: channels to block either side of 802.11b"),
    _key(0x0031, "LC_ENHANCED_POWER_TABLE", "Radio power table"),
    _key(0x0034, "BT_CLOCK_INIT", "Initial value of Bluetooth clock"),
    _key(0x0042, "NO_CAL_ON_BOOT", "Do not calibrate radio on boot"),
    _key(0x0043, "RSSI_HI_TARGET", "RSSI high target"),
    _key(0x0044, "PREFERRED_MIN_ATTENUATION", "Preferred minimum attenuator setting"),
    _key(0x00C9, "FREE_KEY_PIGEON_HOLE", "Link key store bitfield"),
    _key(0x00DA, "ENC_KEY_LMIN", "Minimum encryption key length", "keymin", _U16),
    _key(0x00DB, "ENC_KEY_LMAX", "Maximum encryption key length", "keymax", _U16),
    _key(0x00EF, "LOCAL_SUPPORTED_FEATURES", "Local supported features block",
         "features", _ARR, 8),
    _key(0x00F0, "LM_USE_UNIT_KEY", "Allow use of unit key"),
    _key(0x00F2, "HCI_NOP_DISABLE", "Disable the HCI Command_Status event on boot"),
    _key(0x00F4, "LM_MAX_EVENT_FILTERS", "Maximum number of event filters"),
    _key(0x00F6, "LM_TEST_SEND_ACCEPTED_TWICE",
         "LM sends two LMP_accepted messages in test mode"),
    _key(0x00F9, "AFH_OPTIONS", "Options to configure AFH"),
    _key(0x0106, "LOCAL_SUPPORTED_COMMANDS", "Local supported commands",
         "commands", _ARR, 18),
    _key(0x010D, "HCI_LMP_LOCAL_VERSION", "HCI and LMP version reported locally",
         "version", _U16),
    _key(0x010E, "LMP_REMOTE_VERSION", "LMP version reported remotely",
         "remver", _U8),
    _key(0x0136, "DFU_ATTRIBUTES", "DFU attributes"),
    _key(0x0137, "DFU_DETACH_TO", "DFU detach timeout"),
    _key(0x0138, "DFU_TRANSFER_SIZE", "DFU transfer size"),
    _key(0x0139, "DFU_ENABLE", "DFU enable"),
    _key(0x01A5, "HOSTIO_USE_HCI_EXTN", "Use the HCI Extension protocol",
         "hciextn", _U16),
    _key(0x01A6, "HOSTIO_USE_HCI_EXTN_CCFC",
         "Use command-complete flow control for HCI extn"),
    _key(0x01A7, "HOSTIO_HCI_EXTN_PAYLOAD_SIZE", "Maximum HCI Extension payload size"),
    _key(0x01AA, "BCSP_LM_CNF_CNT_LIMIT", "BCSP link establishment conf message count"),
    _key(0x01AB, "HOSTIO_MAP_SCO_PCM", "Map SCO over PCM", "mapsco", _U16),
    _key(0x01AC, "HOSTIO_AWKWARD_PCM_SYNC", "PCM interface synchronisation is difficult"),
    _key(0x01AD, "HOSTIO_BREAK_POLL_PERIOD", "Break poll period (microseconds)"),
    _key(0x01AE, "HOSTIO_MIN_UART_HCI_SCO_SIZE",
         "Minimum SCO packet size sent to host over UART HCI"),
    _key(0x01B0, "HOSTIO_MAP_SCO_CODEC", "Map SCO over the built-in codec"),
    _key(0x01B1, "PCM_CVSD_TX_HI_FREQ_BOOST",
         "High frequency boost for PCM when transmitting CVSD"),
    _key(0x01B2, "PCM_CVSD_RX_HI_FREQ_BOOST",
         "High frequency boost for PCM when receiving CVSD"),
    _key(0x01B3, "PCM_CONFIG32", "PCM interface settings bitfields"),
    _key(0x01B4, "USE_OLD_BCSP_LE", "Use the old version of BCSP link establishment"),
    _key(0x01B5, "PCM_CVSD_USE_NEW_FILTER", "CVSD uses the new filter if available"),
    _key(0x01B6, "PCM_FORMAT", "PCM data format"),
    _key(0x01B7, "CODEC_OUT_GAIN", "Audio output gain when using built-in codec"),
    _key(0x01B8, "CODEC_IN_GAIN", "Audio input gain when using built-in codec"),
    _key(0x01B9, "CODEC_PIO", "PIO to enable when built-in codec is enabled"),
    _key(0x01BA, "PCM_LOW_JITTER_CONFIG",
         "PCM interface settings for low jitter master mode"),
    _key(0x01BB, "HOSTIO_SCO_PCM_THRESHOLDS", "Thresholds for SCO PCM buffers"),
    _key(0x01BC, "HOSTIO_SCO_HCI_THRESHOLDS", "Thresholds for SCO HCI buffers"),
    _key(0x01BD, "HOSTIO_MAP_SCO_PCM_SLOT",
         "Route SCO data to specified slot in pcm frame"),
    _key(0x01BE, "UART_BAUDRATE", "UART Baud rate", "baudrate", _U16),
    _key(0x01BF, "UART_CONFIG_BCSP", "UART configuration when using BCSP"),
    _key(0x01C0, "UART_CONFIG_H4", "UART configuration when using H4"),
    _key(0x01C1, "UART_CONFIG_H5", "UART configuration when using H5"),
    _key(0x01C2, "UART_CONFIG_USR", "UART configuration when under VM control"),
    _key(0x01C3, "UART_TX_CRCS", "Use CRCs for BCSP or H5"),
    _key(0x01C4, "UART_ACK_TIMEOUT", "Acknowledgement timeout for BCSP and H5"),
    _key(0x01C5, "UART_TX_MAX_ATTEMPTS", "Max times to send reliable BCSP or H5 message"),
    _key(0x01C6, "UART_TX_WINDOW_SIZE", "Transmit window size for BCSP and H5"),
    _key(0x01C7, "UART_HOST_WAKE", "UART Host Wakeup"),
    _key(0x01C9, "PCM_ALWAYS_ENABLE", "PCM port is always enable when chip is running"),
    _key(0x01CB, "UART_CONFIG_H4DS", "UART configuration when using H4DS"),
    _key(0x01F6, "ANA_FTRIM", "Crystal frequency trim", "anaftrim", _U16),
    _key(0x01F7, "WD_TIMEOUT", "Watchdog timeout (microseconds)"),
    _key(0x01F8, "WD_PERIOD", "Watchdog period (microseconds)"),
    _key(0x01F9, "HOST_INTERFACE", "Host interface", "hostintf", _U16),
    _key(0x01FB, "HQ_HOST_TIMEOUT", "HQ host command timeout"),
    _key(0x01FC, "HQ_ACTIVE", "Enable host query task?"),
    _key(0x01FD, "BCCMD_SECURITY_ACTIVE", "Enable configuration security"),
    _key(0x01FE, "ANA_FREQ", "Crystal frequency", "anafreq", _U16),
    _key(0x01FF, "PIO_PROTECT_MASK", "Access to PIO pins"),
    _key(0x0200, "PMALLOC_SIZES", "pmalloc sizes array"),
    _key(0x0201, "UART_BAUD_RATE", "UART Baud rate (pre 18)"),
    _key(0x0202, "UART_CONFIG", "UART configuration bitfield"),
    _key(0x0203, "STUB", "Stub"),
    _key(0x0209, "TXRX_PIO_CONTROL", "TX and RX PIO control"),
    _key(0x0210, "ANA_RX_LEVEL", "ANA_RX_LVL register initial value"),
    _key(0x0211, "ANA_RX_FTRIM", "ANA_RX_FTRIM register initial value"),
    _key(0x0212, "PSBC_DATA_VERSION", "Persistent store version"),
    _key(0x0214, "PCM0_ATTENUATION", "Volume control on PCM channel 0"),
    _key(0x0217, "LO_LVL_MAX", "Maximum value of LO level control register"),
    _key(0x021A, "IQ_TRIM_CHANNEL", "IQ calibration channel"),
    _key(0x021B, "IQ_TRIM_GAIN", "IQ calibration gain"),
    _key(0x021C, "IQ_TRIM_ENABLE", "IQ calibration enable"),
    _key(0x021D, "TX_OFFSET_HALF_MHZ", "Transmit offset"),
    _key(0x0221, "GBL_MISC_ENABLES", "Global miscellaneous hardware enables"),
    _key(0x0222, "UART_SLEEP_TIMEOUT", "Time in ms to deep sleep if nothing received"),
    _key(0x0229, "DEEP_SLEEP_STATE", "Deep sleep state usage"),
    _key(0x023B, "USE_EXTERNAL_CLOCK", "Device uses an external clock"),
    _key(0x023C, "DEEP_SLEEP_WAKE_CTS", "Exit deep sleep on CTS line activity"),
    _key(0x023E, "RX_HIGHSIDE", "Disable the HIGHSIDE bit in ANA_CONFIG"),
    _key(0x0240, "TX_PRE_LVL", "TX pre-amplifier level"),
    _key(0x0243, "CLOCK_REQUEST_ENABLE", "External clock request enable"),
    _key(0x0246, "XTAL_TARGET_AMPLITUDE", "Crystal target amplitude"),
    _key(0x0249, "CPU_IDLE_MODE", "CPU idle mode when radio is active"),
    _key(0x024A, "DEEP_SLEEP_CLEAR_RTS", "Deep sleep clears the UART RTS line"),
    _key(0x024B, "RF_RESONANCE_TRIM", "Frequency trim for IQ and LNA resonant circuits"),
    _key(0x024D, "DRAIN_BORE_TIMERS", "Energy consumption measurement settings"),
    _key(0x0250, "MODULE_ID", "Module serial number"),
    _key(0x0251, "MODULE_DESIGN", "Module design ID"),
    _key(0x0253, "MODULE_SECURITY_CODE", "Module security code"),
    _key(0x0254, "VM_DISABLE", "VM disable"),
    _key(0x0264, "DUT_VM_DISABLE", "VM disable when entering radiotest modes"),
    *(
        _key(0x028A + n, f"USR{n}", f"User configuration data {n}")
        for n in range(16)
    ),
    _key(0x02BE, "USB_VENDOR_ID", "USB vendor identifier", "usbvid", _U16),
    _key(0x02BF, "USB_PRODUCT_ID", "USB product identifier", "usbpid", _U16),
    _key(0x02CB, "USB_DFU_PRODUCT_ID", "USB DFU product ID", "dfupid", _U16),
    _key(0x03CD, "INITIAL_BOOTMODE", "Initial device bootmode", "bootmode", _U16),
)

_BY_ID: dict[int, PSKey] = {key.id: key for key in PS_KEYS}
_BY_NAME: dict[str, PSKey] = {}
for _entry in PS_KEYS:
    _BY_NAME[_entry.name.lower()] = _entry
    _BY_NAME[_entry.symbol.lower()] = _entry
    if _entry.alias:
        _BY_NAME[_entry.alias] = _entry

# Short CLI names in registration order
ALIASES: tuple[PSKey, ...] = tuple(key for key in PS_KEYS if key.alias)


def parse_number(token: str) -> int:
    """Parse a ``0x``-prefixed hexadecimal or plain decimal integer.

    Raises:
        InvalidArgument: If the token is not a number.
    """
    text = token.strip()
    try:
        if text[:2].lower() == "0x":
            return int(text[2:], 16)
        return int(text, 10)
    except ValueError:
        raise InvalidArgument(f"Invalid number: {token!r}") from None


def lookup(key_id: int) -> PSKey | None:
    return _BY_ID.get(key_id)


def resolve_key(token: str) -> int:
    """Resolve a user token to a PS key id.

    Raises:
        InvalidKeyToken: If the token is neither a number nor a known name,
            or names the reserved key 0x0000 or a value above 0xFFFF.
    """
    text = token.strip()
    if text[:2].lower() != "0x":
        entry = _BY_NAME.get(text.lower())
        if entry is not None:
            return entry.id
    try:
        key_id = parse_number(text)
    except InvalidArgument:
        raise InvalidKeyToken(token) from None
    if not KEY_SENTINEL < key_id <= MAX_KEY:
        raise InvalidKeyToken(token)
    return key_id


def display_name(key_id: int) -> str:
    """Return the key's description, or ``0x%04x`` if it is not registered."""
    entry = _BY_ID.get(key_id)
    if entry is None:
        return f"0x{key_id:04x}"
    return entry.description


def symbol(key_id: int) -> str:
    """Return ``PSKEY_<NAME>``, or ``0x%04x`` if the key is not registered."""
    entry = _BY_ID.get(key_id)
    if entry is None:
        return f"0x{key_id:04x}"
    return entry.symbol
