"""Checksum helpers shared by the UART link layers."""
