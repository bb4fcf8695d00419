from __future__ import annotations

from io import BytesIO
from typing import Any

import pytest

from respwire import ProtocolUsageError, ProtocolVersion, RESPWriter


class TestDispatch:
    def test_integer(self, sink: BytesIO, version: ProtocolVersion) -> None:
        RESPWriter(sink, version).write(42)
        assert sink.getvalue() == b":42\r\n"

    def test_text(self, sink: BytesIO, version: ProtocolVersion) -> None:
        RESPWriter(sink, version).write("ok")
        assert sink.getvalue() == b"$2\r\nok\r\n"

    def test_sequence(self, sink: BytesIO, version: ProtocolVersion) -> None:
        RESPWriter(sink, version).write([1, 2])
        assert sink.getvalue() == b"*2\r\n:1\r\n:2\r\n"

    @pytest.mark.parametrize(
        "version, expected",
        [
            pytest.param(ProtocolVersion.V3, b",3.5\r\n", id="resp3"),
            pytest.param(ProtocolVersion.V2, b"$3\r\n3.5\r\n", id="resp2"),
            pytest.param(ProtocolVersion.V1, b"$3\r\n3.5\r\n", id="resp1"),
        ],
    )
    def test_float(
        self, sink: BytesIO, version: ProtocolVersion, expected: bytes
    ) -> None:
        RESPWriter(sink, version).write(3.5)
        assert sink.getvalue() == expected

    @pytest.mark.parametrize(
        "version, expected",
        [
            pytest.param(ProtocolVersion.V3, b"%1\r\n$1\r\na\r\n:1\r\n", id="resp3"),
            pytest.param(ProtocolVersion.V2, b"*2\r\n$1\r\na\r\n:1\r\n", id="resp2"),
        ],
    )
    def test_mapping(
        self, sink: BytesIO, version: ProtocolVersion, expected: bytes
    ) -> None:
        RESPWriter(sink, version).write({"a": 1})
        assert sink.getvalue() == expected

    def test_default_version_is_resp2(self, sink: BytesIO) -> None:
        writer = RESPWriter(sink)
        assert writer.version is ProtocolVersion.V2
        writer.write(True)
        assert sink.getvalue() == b"$4\r\nTrue\r\n"

    def test_version_switch(self, sink: BytesIO) -> None:
        writer = RESPWriter(sink, ProtocolVersion.V2)
        writer.write(1.5)
        writer.set_version(ProtocolVersion.V3)
        writer.write(1.5)
        writer.set_version(ProtocolVersion.V1)
        writer.write(None)
        assert sink.getvalue() == b"$3\r\n1.5\r\n,1.5\r\n$0\r\n\r\n"

    def test_version_from_int(self, sink: BytesIO) -> None:
        writer = RESPWriter(sink, 3)  # type: ignore[arg-type]
        assert writer.version is ProtocolVersion.V3

    def test_invalid_version(self, sink: BytesIO) -> None:
        writer = RESPWriter(sink)
        with pytest.raises(ValueError):
            writer.set_version(4)  # type: ignore[arg-type]

    def test_values_are_not_mutated(self, writer: RESPWriter) -> None:
        value = {"a": [1, 2], "b": {"c"}}
        writer.write(value)
        assert value == {"a": [1, 2], "b": {"c"}}


class TestPrimitives:
    @pytest.mark.parametrize(
        "method, args, expected",
        [
            pytest.param("write_simple_string", ("OK",), b"+OK\r\n", id="simple"),
            pytest.param(
                "write_bulk_string", ("ö",), b"$2\r\n\xc3\xb6\r\n", id="bulk"
            ),
            pytest.param("write_integer", (-5,), b":-5\r\n", id="integer"),
            pytest.param("write_error", ("ERR bad",), b"-ERR bad\r\n", id="error"),
            pytest.param("write_null", (), b"_\r\n", id="null"),
            pytest.param("write_double", (0.5,), b",0.5\r\n", id="double"),
            pytest.param("write_double", (float("inf"),), b",inf\r\n", id="inf"),
            pytest.param("write_double", (float("-inf"),), b",-inf\r\n", id="-inf"),
            pytest.param("write_double", (float("nan"),), b",nan\r\n", id="nan"),
            pytest.param("write_boolean", (True,), b"#t\r\n", id="true"),
            pytest.param("write_boolean", (False,), b"#f\r\n", id="false"),
            pytest.param(
                "write_blob_error", ("ERR x",), b"!5\r\nERR x\r\n", id="blob_error"
            ),
            pytest.param(
                "write_verbatim_string",
                ("txt", "hello"),
                b"=9\r\ntxt:hello\r\n",
                id="verbatim",
            ),
            pytest.param(
                "write_big_number",
                (10**20,),
                b"(100000000000000000000\r\n",
                id="bignumber",
            ),
            pytest.param(
                "write_big_number", ("-123",), b"(-123\r\n", id="bignumber_text"
            ),
            pytest.param("start_array", (2,), b"*2\r\n", id="array"),
            pytest.param("start_map", (2,), b"%2\r\n", id="map"),
            pytest.param("start_set", (2,), b"~2\r\n", id="set"),
            pytest.param("start_attribute", (2,), b"|2\r\n", id="attribute"),
            pytest.param("start_push", (2,), b">2\r\n", id="push"),
        ],
    )
    def test_primitive(
        self,
        writer: RESPWriter,
        sink: BytesIO,
        method: str,
        args: tuple[Any, ...],
        expected: bytes,
    ) -> None:
        getattr(writer, method)(*args)
        assert sink.getvalue() == expected

    def test_null_resp2(self, sink: BytesIO, resp2_version: ProtocolVersion) -> None:
        RESPWriter(sink, resp2_version).write_null()
        assert sink.getvalue() == b"$0\r\n\r\n"

    def test_negative_aggregate_length(self, writer: RESPWriter, sink: BytesIO) -> None:
        with pytest.raises(ProtocolUsageError, match="cannot be negative"):
            writer.start_array(-1)

        assert sink.getvalue() == b""

    def test_each_write_is_one_sink_call(self) -> None:
        class RecordingSink:
            def __init__(self) -> None:
                self.writes: list[bytes] = []

            def write(self, data: bytes) -> int:
                self.writes.append(data)
                return len(data)

            def close(self) -> None:
                pass

        sink = RecordingSink()
        writer = RESPWriter(sink, ProtocolVersion.V3)
        writer.write([1, {"a": None}])
        writer.write_integer(5)
        assert sink.writes == [b"*2\r\n:1\r\n%1\r\n$1\r\na\r\n_\r\n", b":5\r\n"]


class TestAggregateBuilders:
    def test_array(self, writer: RESPWriter, sink: BytesIO) -> None:
        with writer.array() as array:
            array.add(1)
            array.add("a")
            assert len(array) == 2

        assert sink.getvalue() == b"*2\r\n:1\r\n$1\r\na\r\n"

    def test_empty_array(self, writer: RESPWriter, sink: BytesIO) -> None:
        with writer.array():
            pass

        assert sink.getvalue() == b"*0\r\n"

    def test_nothing_written_until_finished(
        self, writer: RESPWriter, sink: BytesIO
    ) -> None:
        with writer.array() as array:
            array.add(1)
            assert sink.getvalue() == b""

    def test_nested(self, writer: RESPWriter, sink: BytesIO) -> None:
        with writer.map() as map_:
            map_.add("x", 1)
            map_.add_key("y")
            with map_.array() as array:
                array.add(True)
                with array.set() as set_:
                    set_.add(7)

        assert sink.getvalue() == (
            b"%2\r\n$1\r\nx\r\n:1\r\n$1\r\ny\r\n*2\r\n#t\r\n~1\r\n:7\r\n"
        )

    def test_map_resp2(self, sink: BytesIO, resp2_version: ProtocolVersion) -> None:
        writer = RESPWriter(sink, resp2_version)
        with writer.map() as map_:
            map_.add("a", 1)
            map_.add("b", None)

        assert sink.getvalue() == b"*4\r\n$1\r\na\r\n:1\r\n$1\r\nb\r\n$0\r\n\r\n"

    def test_set_resp2(self, sink: BytesIO, resp2_version: ProtocolVersion) -> None:
        writer = RESPWriter(sink, resp2_version)
        with writer.set() as set_:
            set_.add(1)

        assert sink.getvalue() == b"*1\r\n:1\r\n"

    def test_push(self, writer: RESPWriter, sink: BytesIO) -> None:
        with writer.push("message") as push:
            push.add("channel")
            push.add("payload")

        assert sink.getvalue() == (
            b">3\r\n$7\r\nmessage\r\n$7\r\nchannel\r\n$7\r\npayload\r\n"
        )

    def test_attribute(self, writer: RESPWriter, sink: BytesIO) -> None:
        with writer.attribute() as attribute:
            attribute.add("ttl", 10)

        writer.write("value")
        assert sink.getvalue() == b"|1\r\n$3\r\nttl\r\n:10\r\n$5\r\nvalue\r\n"

    def test_map_missing_value(self, writer: RESPWriter, sink: BytesIO) -> None:
        with pytest.raises(ProtocolUsageError, match="the last key has no value"):
            with writer.map() as map_:
                map_.add_key("a")

        assert sink.getvalue() == b""
        writer.write(1)
        assert sink.getvalue() == b":1\r\n"

    def test_exception_discards(self, writer: RESPWriter, sink: BytesIO) -> None:
        with pytest.raises(RuntimeError):
            with writer.array() as array:
                array.add(1)
                raise RuntimeError("boom")

        assert sink.getvalue() == b""
        writer.write(2)
        assert sink.getvalue() == b":2\r\n"

    def test_nested_exception_discards_child_only(
        self, writer: RESPWriter, sink: BytesIO
    ) -> None:
        with writer.array() as array:
            array.add(1)
            try:
                with array.array() as nested:
                    nested.add(2)
                    raise RuntimeError("boom")
            except RuntimeError:
                pass

            array.add(3)

        assert sink.getvalue() == b"*2\r\n:1\r\n:3\r\n"

    def test_add_to_parent_while_child_open(self, writer: RESPWriter) -> None:
        with writer.array() as array:
            nested = array.array()
            with pytest.raises(ProtocolUsageError, match="nested aggregate is open"):
                array.add(1)

            nested.finish()

    def test_direct_write_while_builder_open(self, writer: RESPWriter) -> None:
        with writer.array():
            with pytest.raises(ProtocolUsageError, match="aggregate builder is open"):
                writer.write(1)

    def test_add_after_finish(self, writer: RESPWriter) -> None:
        with writer.array() as array:
            pass

        with pytest.raises(ProtocolUsageError, match="already been finished"):
            array.add(1)

    def test_builder_keeps_its_version(self, writer: RESPWriter, sink: BytesIO) -> None:
        with writer.array() as array:
            writer.set_version(ProtocolVersion.V2)
            array.add(True)

        writer.write(True)
        assert sink.getvalue() == b"*1\r\n#t\r\n$4\r\nTrue\r\n"

    def test_nested_builder_keeps_parent_version(
        self, writer: RESPWriter, sink: BytesIO
    ) -> None:
        with writer.array() as array:
            writer.set_version(ProtocolVersion.V2)
            array.add(True)
            with array.map() as map_:
                map_.add("a", True)

        assert sink.getvalue() == b"*2\r\n#t\r\n%1\r\n$1\r\na\r\n#t\r\n"

    def test_finish_with_open_child_releases_writer(
        self, writer: RESPWriter, sink: BytesIO
    ) -> None:
        with pytest.raises(ProtocolUsageError, match="nested aggregate is open"):
            with writer.array() as array:
                array.add(1)
                nested = array.array()

        with pytest.raises(ProtocolUsageError, match="already been finished"):
            nested.add(2)

        writer.write(1)
        assert sink.getvalue() == b":1\r\n"


class TestStreamedString:
    def test_begin_end_empty(self, writer: RESPWriter, sink: BytesIO) -> None:
        marker = writer.begin_streamed_string("A1B2")
        assert writer.streamed_string_marker == "A1B2"
        assert writer.end_streamed_string() == marker
        assert writer.streamed_string_marker is None
        assert sink.getvalue() == b"$EOF:A1B2\r\nA1B2"

    def test_chunks(self, writer: RESPWriter, sink: BytesIO) -> None:
        writer.begin_streamed_string("M")
        writer.write_chunk("Hello, ")
        writer.write_chunk(b"world")
        writer.end_streamed_string()
        assert sink.getvalue() == b"$EOF:M\r\n$7\r\nHello, \r\n$5\r\nworld\r\nM"

    def test_generated_marker(self, writer: RESPWriter, sink: BytesIO) -> None:
        marker = writer.begin_streamed_string()
        assert len(marker) == 40
        assert marker.isalnum()
        assert marker.upper() == marker
        writer.end_streamed_string()
        encoded = marker.encode()
        assert sink.getvalue() == b"$EOF:" + encoded + b"\r\n" + encoded

    def test_generated_marker_length(self, sink: BytesIO) -> None:
        writer = RESPWriter(sink, marker_length=8)
        assert len(writer.begin_streamed_string()) == 8

    def test_end_without_begin(self, writer: RESPWriter, sink: BytesIO) -> None:
        with pytest.raises(ProtocolUsageError, match="No streamed string is open"):
            writer.end_streamed_string()

        assert sink.getvalue() == b""

    def test_chunk_without_begin(self, writer: RESPWriter) -> None:
        with pytest.raises(ProtocolUsageError, match="No streamed string is open"):
            writer.write_chunk("x")

    def test_double_begin(self, writer: RESPWriter, sink: BytesIO) -> None:
        writer.begin_streamed_string("A")
        with pytest.raises(ProtocolUsageError, match="already open"):
            writer.begin_streamed_string("B")

        assert sink.getvalue() == b"$EOF:A\r\n"

    def test_empty_marker(self, writer: RESPWriter) -> None:
        with pytest.raises(ProtocolUsageError, match="cannot be empty"):
            writer.begin_streamed_string("")

    def test_other_writes_rejected_while_open(self, writer: RESPWriter) -> None:
        writer.begin_streamed_string("A")
        with pytest.raises(ProtocolUsageError, match="Only bulk string chunks"):
            writer.write_integer(1)

        with pytest.raises(ProtocolUsageError, match="Only bulk string chunks"):
            writer.array()


class TestLifecycle:
    def test_close(self) -> None:
        sink = BytesIO()
        writer = RESPWriter(sink)
        writer.close()
        assert writer.closed
        assert sink.closed

    def test_double_close(self) -> None:
        writer = RESPWriter(BytesIO())
        writer.close()
        with pytest.raises(ProtocolUsageError, match="already been closed"):
            writer.close()

    def test_write_after_close(self) -> None:
        writer = RESPWriter(BytesIO())
        writer.close()
        with pytest.raises(ProtocolUsageError, match="has been closed"):
            writer.write(1)

    def test_context_manager(self) -> None:
        sink = BytesIO()
        with RESPWriter(sink) as writer:
            writer.write(1)
            assert sink.getvalue() == b":1\r\n"

        assert sink.closed

    def test_sink_error_propagates(self) -> None:
        class FailingSink:
            def write(self, data: bytes) -> int:
                raise OSError("disk full")

            def close(self) -> None:
                pass

        writer = RESPWriter(FailingSink())
        with pytest.raises(OSError, match="disk full"):
            writer.write("x")
