"""Backend-agnostic adapter components.

- EndpointResolver: tenant base URL resolution
- ContextCache: organization/project context chain with demotion
- PaginatedListExecutor: one pagination and filtering contract
- StabilityCalculator: derived stability metrics
- ResilientWriter: write with reconciliation on undecodable success bodies
"""

from .context import EXCLUDED_FILTER_FIELDS, ContextCache, ContextSource
from .endpoint import EndpointResolver
from .filters import FilterObject, FilterValue, eq, merge_filters, to_query_params
from .models import EventField, JsonDict, Organization, Project, StabilityTarget
from .pagination import PageQuery, PageRequest, PageResult, PageShape, PaginatedListExecutor
from .prompt import GetInput, InputRequest, InputResult, enum_prompt
from .stability import StabilityCalculator, StabilityTargets, decorate
from .writer import ResilientWriter, UpdateIntent, VerificationResult, compare_fields

__all__ = [
    # Endpoint
    "EndpointResolver",
    # Context
    "ContextCache", "ContextSource", "EXCLUDED_FILTER_FIELDS",
    "Organization", "Project", "StabilityTarget", "EventField", "JsonDict",
    # Listing
    "PaginatedListExecutor", "PageRequest", "PageQuery", "PageResult", "PageShape",
    "FilterObject", "FilterValue", "eq", "merge_filters", "to_query_params",
    # Prompting
    "GetInput", "InputRequest", "InputResult", "enum_prompt",
    # Metrics
    "StabilityCalculator", "StabilityTargets", "decorate",
    # Writes
    "ResilientWriter", "UpdateIntent", "VerificationResult", "compare_fields",
]
