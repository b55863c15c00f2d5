"""CoMID building blocks: measurement keys and values, identifiers, roles and relations, with CBOR and JSON encodings."""

__version__ = "0.1.0"

__all__ = [
    "choice",
    "rel",
    "role",
    "oid",
    "uuidval",
    "ueid",
    "psarefval",
    "svn",
    "rawvalue",
    "tagidentity",
    "measurement",
]