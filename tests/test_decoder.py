"""
Decoder Tests - Hex document back to binary, with diagnostics.
"""

import io
import random

import pytest

from hexedit.core.decoder import (
    MAX_DIAGNOSTICS,
    MAX_LINE_LENGTH,
    DecodeError,
    Diagnostic,
    HexDecoder,
    hex_to_bin,
    parse_line,
)
from hexedit.core.encoder import bin_to_hex

HELLO = b"00000000 |  48 65 6C 6C 6F                                      | Hello\n"


def encode(data: bytes) -> bytes:
    out = io.BytesIO()
    bin_to_hex(io.BytesIO(data), out)
    return out.getvalue()


def decode(document: bytes):
    out = io.BytesIO()
    diagnostics = HexDecoder().decode(io.BytesIO(document), out)
    return out.getvalue(), diagnostics


class TestRoundTrip:

    @pytest.mark.parametrize("data", [
        b'',
        b'Hello',
        bytes(range(256)),
        bytes(16),
        bytes(17),
        b'|<<>>#\r\n\t ' * 7,
    ])
    def test_decode_encode(self, data):
        assert decode(encode(data)) == (data, [])

    def test_random_data(self):
        rng = random.Random(1234)
        data = bytes(rng.randrange(256) for _ in range(1000))
        assert decode(encode(data)) == (data, [])


class TestScenarios:

    def test_hello(self):
        assert decode(HELLO) == (b'Hello', [])

    def test_non_printable(self):
        document = encode(b'\x00')
        assert "\ufffd".encode('utf-8') in document
        assert decode(document) == (b'\x00', [])

    def test_deleted_token(self):
        line = b"00000000 |  48 65 6C 6F | Hello\n"
        assert decode(line) == (b'Helo', [])

    def test_ascii_substitution(self):
        line = b"00000000 |  48 << 6C 6C 6F | Hello\n"
        assert decode(line) == (b'Hello', [])

    def test_ascii_substitution_takes_edited_gutter(self):
        line = b"00000000 |  >> 65 6C 6C 6F | Jello\n"
        assert decode(line) == (b'Jello', [])

    def test_invalid_token(self):
        data, diagnostics = decode(b"00000000 |  ZZ 65 | he\n")
        assert data == b''
        assert len(diagnostics) == 1
        d = diagnostics[0]
        assert d.line == 1
        assert d.column == 13
        assert 'invalid hex sequence "ZZ"' in d.message


class TestLineHandling:

    def test_comments_and_blank_lines_are_skipped(self):
        document = b"# header\n\n" + HELLO + b"#trailer\n\n"
        assert decode(document) == (b'Hello', [])

    def test_comment_lines_anywhere(self):
        base = encode(bytes(range(40)))
        lines = base.splitlines(keepends=True)
        lines.insert(len(lines) - 1, b"# 12 34 | nope\n")
        lines.insert(0, b"#|||\n")
        assert decode(b''.join(lines)) == decode(base)

    def test_address_is_ignored(self):
        line = b"whatever you like |  48 65 | He\n"
        assert decode(line) == (b'He', [])

    def test_empty_address(self):
        assert decode(b"|41 42\n") == (b'AB', [])

    def test_case_insensitive(self):
        assert decode(b"0 | ab AB aB Ab\n") == (b'\xab' * 4, [])

    def test_crlf(self):
        document = HELLO.replace(b'\n', b'\r\n')
        assert decode(document) == (b'Hello', [])

    def test_missing_final_newline(self):
        assert decode(HELLO.rstrip(b'\n')) == (b'Hello', [])

    def test_tokens_may_be_reflowed(self):
        document = b"0 |48\t65   6C\n1 |   6C 6F\n"
        assert decode(document) == (b'Hello', [])

    def test_inserted_tokens(self):
        assert decode(b"0 | 48 65 21 21 | He\n") == (b'He!!', [])

    def test_missing_separator(self):
        data, diagnostics = decode(b"41 42 43\n" + HELLO)
        assert data == b'Hello'
        assert diagnostics == [
            Diagnostic(1, 8, "missing address/data separator")
        ]

    def test_missing_ascii_byte(self):
        data, diagnostics = decode(b"0 | 41 42 << | AB\n")
        assert data == b''
        assert diagnostics == [Diagnostic(1, 17, "ASCII byte 2 not present")]

    def test_missing_ascii_field(self):
        _, diagnostics = decode(b"0 | <<\n")
        assert diagnostics[0].message == "ASCII byte 0 not present"

    def test_only_one_leading_gutter_space_stripped(self):
        assert decode(b"0 | << << |  A\n") == (b' A', [])

    def test_substituted_byte_is_not_range_checked(self):
        assert decode(b"0 | << | \x01\n") == (b'\x01', [])

    def test_invalid_token_column_in_later_field(self):
        _, diagnostics = decode(b"00000000 |  41 4 | A\n")
        assert diagnostics[0].column == 16

    def test_invalid_token_same_as_address(self):
        _, diagnostics = decode(b"XY |  XY\n")
        assert diagnostics[0].column == 7

    def test_error_drops_whole_line_and_continues(self):
        document = b"0 | 41 42 QQ 43\n1 | 44\n"
        data, diagnostics = decode(document)
        assert data == b'D'
        assert [(d.line, d.column) for d in diagnostics] == [(1, 11)]

    def test_line_numbers_count_every_line(self):
        document = b"# c\n\n0 | 41\n0 | 4\n"
        _, diagnostics = decode(document)
        assert diagnostics[0].line == 4

    def test_non_utf8_token_is_displayed(self):
        _, diagnostics = decode(b"0 | \xff\xfe\n")
        assert diagnostics[0].message.startswith('invalid hex sequence "\\xff\\xfe"')


class TestDiagnosticCap:

    def test_stops_after_max(self):
        document = b''.join(b"0 | G%d\n" % i for i in range(25))
        _, diagnostics = decode(document)
        assert len(diagnostics) == MAX_DIAGNOSTICS
        assert [d.line for d in diagnostics] == list(range(1, 11))

    def test_rest_of_input_not_consumed(self):
        document = b''.join(b"0 | G\n" for _ in range(MAX_DIAGNOSTICS)) + HELLO
        source = io.BytesIO(document)
        out = io.BytesIO()
        HexDecoder().decode(source, out)
        assert out.getvalue() == b''
        assert source.read() == HELLO

    def test_custom_limit(self):
        document = b"0 | G\n" * 5
        out = io.BytesIO()
        assert len(HexDecoder(max_diagnostics=2).decode(io.BytesIO(document), out)) == 2


class TestLineLength:

    def test_overlong_line_is_reported_and_skipped(self):
        document = b"0 | " + b"41 " * 40 + b"\n" + b"0 | 48 65 6C 6C 6F\n"
        out = io.BytesIO()
        diagnostics = HexDecoder(max_line_length=32).decode(io.BytesIO(document), out)

        assert out.getvalue() == b'Hello'
        assert diagnostics == [Diagnostic(1, 33, "line longer than 32 bytes")]

    def test_line_at_limit_is_accepted(self):
        line = b"0 | 41 42 43 44"
        out = io.BytesIO()
        decoder = HexDecoder(max_line_length=len(line))
        assert decoder.decode(io.BytesIO(line + b"\n" + line), out) == []
        assert out.getvalue() == b'ABCDABCD'

    def test_reads_are_bounded(self):
        class CountingSource(io.BytesIO):
            largest = 0

            def readline(self, size=-1):
                line = super().readline(size)
                CountingSource.largest = max(CountingSource.largest, len(line))
                return line

        source = CountingSource(b"x" * 10000)
        out = io.BytesIO()
        diagnostics = HexDecoder(max_line_length=100).decode(source, out)

        assert [d.message for d in diagnostics] == ["line longer than 100 bytes"]
        assert CountingSource.largest <= 101

    def test_default_limit(self):
        assert MAX_LINE_LENGTH == 64 * 1024


class TestParseLine:

    def test_comment(self):
        assert parse_line(b"# 41 | A") == (b'', None)

    def test_empty(self):
        assert parse_line(b"") == (b'', None)

    def test_data(self):
        assert parse_line(b"0 | 41 42 | AB") == (b'AB', None)

    def test_hash_not_in_first_column(self):
        assert parse_line(b" # | 41") == (b'A', None)


class TestHexToBin:

    def test_success(self):
        out = io.BytesIO()
        hex_to_bin(io.BytesIO(HELLO), out)
        assert out.getvalue() == b'Hello'

    def test_raises_decode_error(self):
        with pytest.raises(DecodeError) as excinfo:
            hex_to_bin(io.BytesIO(b"0 | ZZ\nnope\n"), io.BytesIO())

        assert [str(d) for d in excinfo.value.diagnostics] == [
            '1:5: invalid hex sequence "ZZ", must be 00–FF',
            '2:4: missing address/data separator',
        ]
        assert "1:5:" in str(excinfo.value)

    def test_partial_output_streamed_before_error(self):
        out = io.BytesIO()
        with pytest.raises(DecodeError):
            hex_to_bin(io.BytesIO(HELLO + b"0 | ZZ\n"), out)
        assert out.getvalue() == b'Hello'

    def test_io_error_is_not_a_diagnostic(self):
        class BrokenSink(io.BytesIO):
            def write(self, data):
                raise OSError("disk full")

        with pytest.raises(OSError, match="disk full"):
            hex_to_bin(io.BytesIO(HELLO), BrokenSink())
