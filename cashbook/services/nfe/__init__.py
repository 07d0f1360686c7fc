"""NFe document parsing package."""

from cashbook.services.nfe.parser import (
    NF_PAYMENT_METHODS,
    MalformedDocumentError,
    NFeError,
    load_nfe_tree,
    parse_nfe_xml,
    payment_method_label,
    suggested_source,
)

__all__ = [
    "NF_PAYMENT_METHODS",
    "MalformedDocumentError",
    "NFeError",
    "load_nfe_tree",
    "parse_nfe_xml",
    "payment_method_label",
    "suggested_source",
]
