"""Digital Auction Platform backend: auction settlement and delivery bookkeeping."""

__version__ = "1.0.0"
