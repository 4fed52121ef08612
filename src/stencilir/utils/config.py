"""
Configuration constants to replace magic numbers throughout stencilir
"""

# Spatial dimensions (I, J, K)
NUM_DIMENSIONS = 3
ZERO_OFFSET = (0, 0, 0)
DEFAULT_FIELD_DIMENSIONS = (1, 1, 1)

# Source location sentinel
UNKNOWN_LINE = -1
UNKNOWN_COLUMN = -1

# Stencil function argument mapping: index of an unused argument slot
UNUSED_ARGUMENT_INDEX = -1
UNUSED_ARGUMENT_MAP = (UNUSED_ARGUMENT_INDEX,) * NUM_DIMENSIONS

# Name of the generated stencil calls which replace lowered vertical regions
STENCIL_CALL_PREFIX = "__code_gen_"

# Separator used when naming a new field version (<name>_<n>)
VERSION_NAME_SEPARATOR = "_"

# Range of the int32 wire fields (IDs, offsets, extents, integer globals)
WIRE_INT_MIN = -2 ** 31
WIRE_INT_MAX = 2 ** 31 - 1

# Wire schema (protocol buffers packages and file names)
STATEMENTS_PROTO_PACKAGE = "dawn.proto.statements"
IIR_PROTO_PACKAGE = "dawn.proto.iir"
STATEMENTS_PROTO_FILE = "stencilir/statements.proto"
IIR_PROTO_FILE = "stencilir/iir.proto"

# Serialization
DEFAULT_SERIALIZATION_FORMAT = "byte"
JSON_INDENT = 2

# File encoding constants
DEFAULT_FILE_ENCODING = "utf-8"

# Diagnostics color switches (environment variables)
NO_COLOR_ENV = "NO_COLOR"
COLOR_ENV = "STENCILIR_COLOR"
