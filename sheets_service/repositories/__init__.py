from .phase_queries import (
    list_parent_opportunities,
    get_relevant_phase_rows,
    get_evaluation_config_rows,
)
from .batch_queries import (
    fetch_registration_rows,
    fetch_parent_link_rows,
    fetch_field_value_rows,
    fetch_evaluation_rows,
    fetch_attachment_rows,
)

__all__ = [
    "list_parent_opportunities",
    "get_relevant_phase_rows",
    "get_evaluation_config_rows",
    "fetch_registration_rows",
    "fetch_parent_link_rows",
    "fetch_field_value_rows",
    "fetch_evaluation_rows",
    "fetch_attachment_rows",
]
