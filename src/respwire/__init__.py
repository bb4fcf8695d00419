from ._exceptions import ProtocolUsageError as ProtocolUsageError
from ._exceptions import RESPError as RESPError
from ._exceptions import RESPParseError as RESPParseError
from ._resp import Attributes as Attributes
from ._resp import BigNumber as BigNumber
from ._resp import BlobError as BlobError
from ._resp import ProtocolVersion as ProtocolVersion
from ._resp import PushData as PushData
from ._resp import RESPEnd as RESPEnd
from ._resp import RESPParser as RESPParser
from ._resp import RESPValue as RESPValue
from ._resp import SimpleError as SimpleError
from ._resp import SimpleString as SimpleString
from ._resp import VerbatimString as VerbatimString
from ._resp import serialize_command as serialize_command
from ._resp import serialize_value as serialize_value
from ._stream import RESPStream as RESPStream
from ._types import ByteSink as ByteSink
from ._utils import decode_value as decode_value
from ._utils import generate_marker as generate_marker
from ._writer import AggregateBuilder as AggregateBuilder
from ._writer import MapBuilder as MapBuilder
from ._writer import RESPWriter as RESPWriter

# Re-export imports so they look like they live directly in this package
for value in list(locals().values()):
    if getattr(value, "__module__", "").startswith(f"{__name__}."):
        value.__module__ = __name__
