"""
Metadata: symbol table, field versioning and the StencilInstantiation.
"""

from .versioning import VariableVersions
from .meta_info import GlobalValueType, GlobalValue, StencilDescStatement, StencilMetaInfo
from .instantiation import StencilInstantiation
