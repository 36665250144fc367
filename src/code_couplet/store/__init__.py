from code_couplet.store.json_store import (
    JsonSchemaStore,
    LoadAllResult,
    SaveResult,
    compute_content_hash,
    decode_schema,
    serialize_schema,
)
from code_couplet.store.paths import (
    MAPPINGS_DIR_NAME,
    PATH_TRANSFORM_FRAGMENT,
    RootResolver,
    code_relative_path,
    inverse,
    map_to_storage_path,
    resolve_code_path,
    resolve_storage_root,
)

__all__ = [
    "MAPPINGS_DIR_NAME",
    "PATH_TRANSFORM_FRAGMENT",
    "JsonSchemaStore",
    "LoadAllResult",
    "RootResolver",
    "SaveResult",
    "code_relative_path",
    "compute_content_hash",
    "decode_schema",
    "inverse",
    "map_to_storage_path",
    "resolve_code_path",
    "resolve_storage_root",
    "serialize_schema",
]
