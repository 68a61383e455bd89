"""Read and write CSR BlueCore persistent store keys over BCCMD."""

__version__ = "0.1.0"
