"""Token metadata resolution (Token-2022 extension, then Metaplex)."""

from migwatch.metadata.resolver import (
    MetadataResolver,
    decode_metaplex_metadata,
    derive_metadata_address,
)

__all__ = ["MetadataResolver", "decode_metaplex_metadata", "derive_metadata_address"]
