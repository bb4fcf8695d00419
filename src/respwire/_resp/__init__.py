from ._parser import RESPParser as RESPParser
from ._serializer import serialize_aggregate_header as serialize_aggregate_header
from ._serializer import serialize_array as serialize_array
from ._serializer import serialize_bignumber as serialize_bignumber
from ._serializer import serialize_blob_error as serialize_blob_error
from ._serializer import serialize_boolean as serialize_boolean
from ._serializer import serialize_bulk_string as serialize_bulk_string
from ._serializer import serialize_bytestring as serialize_bytestring
from ._serializer import serialize_command as serialize_command
from ._serializer import serialize_double as serialize_double
from ._serializer import serialize_error as serialize_error
from ._serializer import serialize_int as serialize_int
from ._serializer import serialize_map as serialize_map
from ._serializer import serialize_null as serialize_null
from ._serializer import serialize_set as serialize_set
from ._serializer import serialize_simple_string as serialize_simple_string
from ._serializer import (
    serialize_streamed_string_start as serialize_streamed_string_start,
)
from ._serializer import serialize_value as serialize_value
from ._serializer import serialize_verbatim_string as serialize_verbatim_string
from ._types import Attributes as Attributes
from ._types import BigNumber as BigNumber
from ._types import BlobError as BlobError
from ._types import ProtocolVersion as ProtocolVersion
from ._types import PushData as PushData
from ._types import RESPEnd as RESPEnd
from ._types import RESPValue as RESPValue
from ._types import SimpleError as SimpleError
from ._types import SimpleString as SimpleString
from ._types import VerbatimString as VerbatimString
