"""Base Pydantic model configuration"""

from pydantic import ConfigDict

# Keep order of fields as in class definition (not sorted alphabetically)
BASE_MODEL_CONFIG = ConfigDict(
    json_schema_serialization_defaults_required=True,
    populate_by_name=True,
    strict=False,
    use_enum_values=False,
)
