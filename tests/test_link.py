"""Tests for SLIP framing and the BCSP/H5 reliable link."""

import pytest

from csr_bccmd.exceptions import ProtocolIOError, TransportOpenFailed
from csr_bccmd.transport import link
from csr_bccmd.transport.bcsp import BCSPLink
from csr_bccmd.transport.h5 import ThreeWireLink
from csr_bccmd.transport.link import (
    LinkPacket,
    SlipDecoder,
    build_link_packet,
    header_checksum,
    parse_link_packet,
    slip_encode,
)

from fakes import LinkPeer


@pytest.fixture(autouse=True)
def fast_link(monkeypatch):
    monkeypatch.setattr(link, "ACK_TIMEOUT", 0.02)


def test_slip_encode_escapes():
    assert slip_encode(b"\x01\xC0\x02\xDB") == b"\xC0\x01\xDB\xDC\x02\xDB\xDD\xC0"


def test_slip_decoder_reassembles_split_frames():
    decoder = SlipDecoder()
    encoded = slip_encode(b"\xC0abc\xDB")
    assert decoder.feed(encoded[:3]) == []
    assert decoder.feed(encoded[3:]) == [b"\xC0abc\xDB"]


def test_slip_decoder_drops_empty_frames_and_noise():
    decoder = SlipDecoder()
    assert decoder.feed(b"noise\xC0\xC0\xC0one\xC0\xC0two\xC0") == [b"one", b"two"]


def test_slip_decoder_drops_bad_escape():
    decoder = SlipDecoder()
    assert decoder.feed(b"\xC0ab\xDB\x01cd\xC0\xC0ok\xC0") == [b"ok"]


def test_header_checksum():
    assert header_checksum(0x00, 0x00, 0x00) == 0xFF
    assert header_checksum(0x80, 0x42, 0x01) == 0x3C


def test_build_link_packet_header():
    packet = build_link_packet(2, b"\x00" * 18, seq=3, ack=5, reliable=True)
    assert packet[0] == 0x80 | (5 << 3) | 3
    assert packet[1] == 0x22
    assert packet[2] == 0x01
    assert len(packet) == 4 + 18


def test_link_packet_with_crc_parses():
    packet = build_link_packet(2, b"hello", seq=1, ack=2, reliable=True, crc=True)
    assert len(packet) == 4 + 5 + 2
    assert parse_link_packet(packet) == LinkPacket(2, b"hello", seq=1, ack=2, reliable=True)


def test_parse_link_packet_bad_checksum():
    packet = bytearray(build_link_packet(1, b"\xDA\xDC\xED\xED"))
    packet[3] ^= 0xFF
    with pytest.raises(ValueError, match="checksum"):
        parse_link_packet(bytes(packet))


def test_parse_link_packet_bad_crc():
    packet = bytearray(build_link_packet(2, b"data", reliable=True, crc=True))
    packet[-1] ^= 0x01
    with pytest.raises(ValueError, match="CRC"):
        parse_link_packet(bytes(packet))


def test_parse_link_packet_short_and_truncated():
    with pytest.raises(ValueError, match="too short"):
        parse_link_packet(b"\x00\x00")
    with pytest.raises(ValueError, match="length"):
        parse_link_packet(build_link_packet(2, b"data")[:-1])


def test_build_link_packet_rejects_oversize():
    with pytest.raises(ValueError):
        build_link_packet(2, bytes(0x1000))


def test_bcsp_establish():
    peer = LinkPeer(BCSPLink)
    bcsp = BCSPLink(peer)
    bcsp.establish()
    assert bcsp.established
    sent = SlipDecoder().feed(bytes(peer.written))
    payloads = [parse_link_packet(raw).payload for raw in sent]
    assert payloads == [BCSPLink.sync, BCSPLink.conf]


def test_three_wire_establish_sends_config():
    peer = LinkPeer(ThreeWireLink)
    h5 = ThreeWireLink(peer)
    h5.establish()
    sent = [parse_link_packet(raw) for raw in SlipDecoder().feed(bytes(peer.written))]
    assert [p.channel for p in sent] == [15, 15]
    assert sent[0].payload == b"\x01\x7E"
    assert sent[1].payload == b"\x03\xFC\x01"


def test_establish_times_out():
    peer = LinkPeer(BCSPLink, answer_sync=False)
    with pytest.raises(TransportOpenFailed, match="timed out"):
        BCSPLink(peer).establish(timeout=0.1)


def test_reliable_send_and_receive():
    peer = LinkPeer(BCSPLink, respond=lambda channel, payload: [(channel, payload[::-1])])
    bcsp = BCSPLink(peer)
    bcsp.establish()
    bcsp.send(2, b"\x01\x02\x03")
    assert bcsp.receive(2, timeout=0.5) == b"\x03\x02\x01"

    bcsp.send(2, b"\x04")
    assert bcsp.receive(2, timeout=0.5) == b"\x04"
    assert [p.seq for p in peer.received] == [0, 1]


def test_reliable_packets_carry_crc_on_bcsp_only():
    bcsp_peer = LinkPeer(BCSPLink)
    BCSPLink(bcsp_peer).send(2, b"x")
    h5_peer = LinkPeer(ThreeWireLink)
    ThreeWireLink(h5_peer).send(1, b"x")
    bcsp_raw = SlipDecoder().feed(bytes(bcsp_peer.written))[0]
    h5_raw = SlipDecoder().feed(bytes(h5_peer.written))[0]
    assert bcsp_raw[0] & 0x40
    assert not h5_raw[0] & 0x40


def test_send_retransmits_until_acknowledged():
    peer = LinkPeer(BCSPLink)
    peer.drop_next = 2
    BCSPLink(peer).send(2, b"payload")
    sent = SlipDecoder().feed(bytes(peer.written))
    assert len(sent) == 3
    assert len(peer.received) == 1


def test_send_gives_up_without_ack():
    peer = LinkPeer(BCSPLink)
    peer.drop_next = link.MAX_ATTEMPTS
    with pytest.raises(ProtocolIOError, match="No acknowledgement"):
        BCSPLink(peer).send(2, b"payload")


def test_receive_times_out():
    assert BCSPLink(LinkPeer(BCSPLink)).receive(2, timeout=0.01) is None


def test_receive_discards_other_channels():
    peer = LinkPeer(BCSPLink)
    bcsp = BCSPLink(peer)
    peer.send(5, b"other", reliable=True)
    peer.send(2, b"wanted", reliable=True)
    assert bcsp.receive(2, timeout=0.5) == b"wanted"


def test_peer_resync_is_answered():
    peer = LinkPeer(BCSPLink)
    bcsp = BCSPLink(peer)
    peer.send(1, BCSPLink.sync)
    assert bcsp.receive(2, timeout=0.01) is None
    reply = parse_link_packet(SlipDecoder().feed(bytes(peer.written))[0])
    assert reply.payload == BCSPLink.sync_resp
