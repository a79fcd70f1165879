"""
Socketmap: Postfix Lookup Server

An asyncio TCP server answering Postfix socketmap lookups
(user-exists, virtual-domains, virtual-aliases) from a directory
provider, with a shared TTL cache in front of it.
"""

__version__ = "1.0.0"
