"""
Protocol Parser Module

This module turns decoded netstring payloads into Request objects and
Response objects back into payload bytes.
"""

from .commands import Request, RequestFormatError, Response, ResponseStatus


class ProtocolParser:
    """
    Parser for the socketmap request/reply text.

    Protocol Format:
        Request:  <table> <key>
        Response: OK [value] | NOTFOUND | TEMP <reason> | PERM <reason>

    Framing is handled separately (see netstring.py); the parser only sees
    the decoded payload text.
    """

    def parse_request(self, data: str) -> Request:
        """
        Parse a decoded request payload.

        Args:
            data: Request text, e.g. "user-exists test@example.com"

        Returns:
            Request with the table name and key

        Raises:
            RequestFormatError: If the text does not split into exactly
                two whitespace-separated tokens

        Examples:
            >>> parser = ProtocolParser()
            >>> req = parser.parse_request("virtual-domains example.com")
            >>> req.table, req.key
            ('virtual-domains', 'example.com')
        """
        parts = data.split()
        if len(parts) != 2:
            raise RequestFormatError(
                f"expected '<table> <key>', got {len(parts)} token(s)"
            )

        table, key = parts
        return Request(table=table, key=key, raw=data)

    def format_response(self, response: Response) -> str:
        """
        Format a Response into reply text (without framing).

        Examples:
            >>> parser = ProtocolParser()
            >>> parser.format_response(Response.found("admin@example.com"))
            'OK admin@example.com'
            >>> parser.format_response(Response.found())
            'OK'
            >>> parser.format_response(Response.not_found())
            'NOTFOUND'
        """
        prefix = response.status.value

        if response.status == ResponseStatus.NOTFOUND or not response.value:
            return prefix
        return f"{prefix} {response.value}"

    def encode_response(self, response: Response) -> bytes:
        """Format a Response as UTF-8 payload bytes ready for framing."""
        return self.format_response(response).encode("utf-8")
