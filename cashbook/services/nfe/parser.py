"""
NFe Document Parser

Reads the handful of fields we need from a Brazilian electronic invoice
(Nota Fiscal Eletronica) XML to propose a payable.

DESIGN DECISION: We look tags up by LOCAL name anywhere in the document.
Real NFe files carry the portalfiscal namespace, hand-exported ones often
use a prefix, and test fixtures often have none at all. Matching local
names accepts all three without a namespace map.

This service only PROPOSES data. It never creates a payable; that is
the import flow's job, and the amount rule (> 0) is enforced here so the
flow never sees a document it cannot turn into a payable.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional
from xml.etree import ElementTree

import structlog

from cashbook.models.ledger import PaymentSource
from cashbook.models.reports import ImportedDocument


logger = structlog.get_logger(__name__)

MAX_DESCRIPTION_LENGTH = 200

# tPag codes and labels from the NFe 4.0 layout
NF_PAYMENT_METHODS: dict[str, str] = {
    "01": "Dinheiro",
    "02": "Cheque",
    "03": "Cartão de Crédito",
    "04": "Cartão de Débito",
    "05": "Crédito Loja",
    "10": "Vale Alimentação",
    "11": "Vale Refeição",
    "12": "Vale Presente",
    "13": "Vale Combustível",
    "15": "Boleto",
    "16": "Depósito Bancário",
    "17": "PIX",
    "18": "Transferência",
    "19": "Programa de fidelidade",
    "99": "Outros",
}

_CASH_CODES = {"01"}
_BANK_CODES = {"03", "04", "17"}


class NFeError(Exception):
    """Base exception for NFe parsing errors."""
    pass


class MalformedDocumentError(NFeError):
    """The text is not well-formed XML."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Malformed XML: {detail}")


def _local_name(tag: str) -> str:
    """'{http://www.portalfiscal.inf.br/nfe}nNF' -> 'nNF'"""
    return tag.rsplit("}", 1)[-1]


def _first_text(root: ElementTree.Element, name: str) -> Optional[str]:
    """Text of the first element with this local name, in document order."""
    for element in root.iter():
        if _local_name(element.tag) == name:
            text = (element.text or "").strip()
            return text or None
    return None


def _parse_amount(raw: Optional[str]) -> Optional[Decimal]:
    if not raw:
        return None
    try:
        value = Decimal(raw.replace(",", "."))
    except InvalidOperation:
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value.quantize(Decimal("0.01"))


def _parse_issue_date(raw: Optional[str], today: date) -> date:
    """
    Use the first 10 characters of dEmi when they are YYYY-MM-DD.

    Anything else falls back to today.
    """
    if not raw or len(raw) < 10:
        return today
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return today


def payment_method_label(code: Optional[str]) -> Optional[str]:
    if not code:
        return None
    return NF_PAYMENT_METHODS.get(code, f"Pagamento ({code})")


def suggested_source(code: Optional[str]) -> Optional[PaymentSource]:
    """
    Payment source suggested for a tPag code.

    Cash for 01, bank account for credit/debit card and PIX,
    None (leave the payable pending) for everything else.
    """
    if code in _CASH_CODES:
        return PaymentSource.CASH
    if code in _BANK_CODES:
        return PaymentSource.BANK_ACCOUNT
    return None


def load_nfe_tree(text: str) -> ElementTree.Element:
    """
    Parse XML text.

    Raises:
        MalformedDocumentError: If the text is not well-formed XML
    """
    try:
        return ElementTree.fromstring(text)
    except ElementTree.ParseError as e:
        raise MalformedDocumentError(str(e))


def parse_nfe_xml(text: str, today: Optional[date] = None) -> Optional[ImportedDocument]:
    """
    Extract a proposed payable from NFe XML.

    Returns None when the document is empty, not XML, or carries no
    positive total (vNF). The description is
    "<nNF> - <natOp> - <xNome>" with missing parts left out.
    """
    if not text or not text.strip():
        return None

    today = today or date.today()

    try:
        root = load_nfe_tree(text)
    except MalformedDocumentError as e:
        logger.warning("nfe_malformed", error=e.detail)
        return None

    amount = _parse_amount(_first_text(root, "vNF"))
    if amount is None:
        return None

    number = _first_text(root, "nNF")
    issue_date = _first_text(root, "dEmi") or _first_text(root, "dhEmi")
    # The issuer block (emit) precedes the recipient, so the first xNome is the issuer
    issuer = _first_text(root, "xNome")
    nature = _first_text(root, "natOp")
    payment_code = _first_text(root, "tPag")

    parts = [number or "NFe", nature, issuer]
    description = " - ".join(part for part in parts if part)

    return ImportedDocument(
        description=description[:MAX_DESCRIPTION_LENGTH],
        amount=amount,
        due_date=_parse_issue_date(issue_date, today),
        document_number=number,
        issue_date=issue_date,
        issuer_name=issuer,
        nature_of_operation=nature,
        payment_method_code=payment_code,
        payment_method_label=payment_method_label(payment_code),
    )
