"""Tests for the currency text helpers and the NFe parser."""

import pytest
from datetime import date
from decimal import Decimal

from cashbook.models.ledger import PaymentSource
from cashbook.services.currency import (
    amount_to_display_text,
    apply_typing_mask,
    display_text_to_amount,
)
from cashbook.services.nfe import (
    MalformedDocumentError,
    load_nfe_tree,
    parse_nfe_xml,
    payment_method_label,
    suggested_source,
)

from tests.conftest import TODAY


NFE_NAMESPACE = "http://www.portalfiscal.inf.br/nfe"


def nfe_xml(
    vnf="1500.00",
    nnf="4521",
    dEmi="2026-03-02T10:15:00-03:00",
    nat_op="Venda de mercadoria",
    issuer="Construction Distributor Ltd",
    tpag="15",
    namespace=True,
) -> str:
    """A trimmed-down NFe document with the fields the parser reads."""
    ide = [f"<nNF>{nnf}</nNF>" if nnf else "", f"<natOp>{nat_op}</natOp>" if nat_op else ""]
    if dEmi:
        ide.append(f"<dEmi>{dEmi}</dEmi>")
    payment = f"<pag><detPag><tPag>{tpag}</tPag></detPag></pag>" if tpag else ""
    xmlns = f' xmlns="{NFE_NAMESPACE}"' if namespace else ""
    return (
        f"<nfeProc{xmlns}><NFe><infNFe>"
        f"<ide>{''.join(ide)}</ide>"
        f"<emit><xNome>{issuer}</xNome></emit>"
        f"<dest><xNome>Our Shop</xNome></dest>"
        f"<total><ICMSTot><vNF>{vnf}</vNF></ICMSTot></total>"
        f"{payment}"
        f"</infNFe></NFe></nfeProc>"
    )


class TestCurrencyText:
    """Tests for the R$ display helpers."""

    @pytest.mark.parametrize(
        "amount,expected",
        [
            (Decimal("1234.56"), "R$ 1.234,56"),
            (Decimal("0.5"), "R$ 0,50"),
            (Decimal("1234567.8"), "R$ 1.234.567,80"),
            (Decimal("999"), "R$ 999,00"),
            (Decimal("-42.1"), "R$ -42,10"),
        ],
    )
    def test_display_text(self, amount, expected):
        assert amount_to_display_text(amount) == expected

    def test_zero_is_blank(self):
        assert amount_to_display_text(Decimal("0")) == ""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("R$ 1.234,56", Decimal("1234.56")),
            ("1.234,56", Decimal("1234.56")),
            ("12,5", Decimal("12.50")),
            ("R$1.000", Decimal("1000.00")),
            ("", Decimal("0")),
            ("   ", Decimal("0")),
            ("abc", Decimal("0")),
        ],
    )
    def test_parse(self, text, expected):
        assert display_text_to_amount(text) == expected

    def test_parse_reads_what_display_writes(self):
        amount = Decimal("98765.43")
        assert display_text_to_amount(amount_to_display_text(amount)) == amount

    @pytest.mark.parametrize(
        "typed,expected",
        [
            ("1", "R$ 0,01"),
            ("12", "R$ 0,12"),
            ("123", "R$ 1,23"),
            ("123456", "R$ 1.234,56"),
            ("00123", "R$ 1,23"),
            ("R$ 1.234,567", "R$ 12.345,67"),
            ("", ""),
            ("abc", ""),
        ],
    )
    def test_typing_mask(self, typed, expected):
        assert apply_typing_mask(typed) == expected


class TestNFeParser:
    """Tests for parse_nfe_xml."""

    def test_namespaced_document(self):
        document = parse_nfe_xml(nfe_xml(), today=TODAY)

        assert document.amount == Decimal("1500.00")
        assert document.description == "4521 - Venda de mercadoria - Construction Distributor Ltd"
        assert document.due_date == date(2026, 3, 2)
        assert document.document_number == "4521"
        assert document.issuer_name == "Construction Distributor Ltd"
        assert document.payment_method_code == "15"
        assert document.payment_method_label == "Boleto"

    def test_document_without_namespace(self):
        document = parse_nfe_xml(nfe_xml(namespace=False), today=TODAY)
        assert document.amount == Decimal("1500.00")

    def test_prefixed_tags(self):
        text = (
            f'<nfe:nfeProc xmlns:nfe="{NFE_NAMESPACE}">'
            "<nfe:nNF>77</nfe:nNF><nfe:vNF>10.5</nfe:vNF>"
            "</nfe:nfeProc>"
        )
        document = parse_nfe_xml(text, today=TODAY)
        assert document.description == "77"
        assert document.amount == Decimal("10.50")

    def test_missing_number_uses_placeholder(self):
        document = parse_nfe_xml(nfe_xml(nnf=None, nat_op=None), today=TODAY)
        assert document.description == "NFe - Construction Distributor Ltd"
        assert document.document_number is None

    def test_issuer_comes_before_recipient(self):
        document = parse_nfe_xml(nfe_xml(issuer="Supplier"), today=TODAY)
        assert document.issuer_name == "Supplier"

    def test_description_capped(self):
        document = parse_nfe_xml(nfe_xml(issuer="X" * 300), today=TODAY)
        assert len(document.description) == 200

    def test_without_issue_date_uses_today(self):
        document = parse_nfe_xml(nfe_xml(dEmi=None), today=TODAY)
        assert document.due_date == TODAY
        assert document.issue_date is None

    def test_unreadable_issue_date_uses_today(self):
        document = parse_nfe_xml(nfe_xml(dEmi="02/03/2026"), today=TODAY)
        assert document.due_date == TODAY

    def test_dhemi_accepted(self):
        text = nfe_xml(dEmi=None).replace("<ide>", "<ide><dhEmi>2026-02-20T08:00:00-03:00</dhEmi>")
        assert parse_nfe_xml(text, today=TODAY).due_date == date(2026, 2, 20)

    def test_without_payment_method(self):
        document = parse_nfe_xml(nfe_xml(tpag=None), today=TODAY)
        assert document.payment_method_code is None
        assert document.payment_method_label is None

    def test_unknown_payment_code_label(self):
        document = parse_nfe_xml(nfe_xml(tpag="42"), today=TODAY)
        assert document.payment_method_label == "Pagamento (42)"

    @pytest.mark.parametrize("vnf", ["0.00", "-3", "abc", ""])
    def test_without_positive_total(self, vnf):
        assert parse_nfe_xml(nfe_xml(vnf=vnf), today=TODAY) is None

    @pytest.mark.parametrize("text", ["", "   ", "<nfeProc><vNF>10</nfeProc>", "not xml at all"])
    def test_unusable_text(self, text):
        assert parse_nfe_xml(text, today=TODAY) is None

    def test_load_tree_raises_on_malformed(self):
        with pytest.raises(MalformedDocumentError):
            load_nfe_tree("<a><b></a>")


class TestPaymentCodes:
    @pytest.mark.parametrize(
        "code,source",
        [
            ("01", PaymentSource.CASH),
            ("03", PaymentSource.BANK_ACCOUNT),
            ("04", PaymentSource.BANK_ACCOUNT),
            ("17", PaymentSource.BANK_ACCOUNT),
            ("15", None),
            ("99", None),
            (None, None),
        ],
    )
    def test_suggested_source(self, code, source):
        assert suggested_source(code) is source

    def test_labels(self):
        assert payment_method_label("17") == "PIX"
        assert payment_method_label("01") == "Dinheiro"
        assert payment_method_label(None) is None
