from datetime import datetime

import pytest

from errors import EmptyResultError, ErrorKind
from extractor import TransactionExtractor
from tokenizer import TokenizerConfig
from schema import TRANSACTION_HEADERS


@pytest.fixture
def extractor():
    return TransactionExtractor()


def test_amount_and_balance(extractor):
    transaction = extractor.parse_block("01/02/2024 GROCERY STORE R1 234.56 R 50 000.00")

    assert transaction.to_record() == {
        'Date': '01/02/2024',
        'Description': 'GROCERY STORE',
        'Amount': 'R1 234.56',
        'Fees': '',
        'Balance': 'R 50 000.00',
    }


def test_single_amount_is_rejected(extractor):
    assert extractor.parse_block("01/02/2024 REFUND R10.00") is None


def test_block_without_leading_date_is_rejected(extractor):
    assert extractor.parse_block("Opening balance R1.00 R2.00") is None


def test_second_non_balance_amount_is_fee(extractor):
    transaction = extractor.parse_block("01/02/2024CARD PURCHASE -R100.00 -R2.50 R900.00")

    assert transaction.amount == '-R100.00'
    assert transaction.fees == '-R2.50'
    assert transaction.balance == 'R900.00'
    assert transaction.description == 'CARD PURCHASE'


def test_extra_amounts_are_dropped(extractor):
    transaction = extractor.parse_block("01/02/2024X R1.00 R2.00 R3.00 R4.00")

    assert (transaction.amount, transaction.fees, transaction.balance) == ('R1.00', 'R2.00', 'R4.00')
    assert transaction.description == 'X'


def test_all_amounts_equal_balance(extractor):
    transaction = extractor.parse_block("2024-02-01 ODD R5.00 R5.00")

    assert transaction.amount == 'R5.00'
    assert transaction.balance == 'R5.00'
    assert transaction.fees == ''
    assert transaction.description == 'ODD'


def test_repeated_amount_removed_everywhere_from_description(extractor):
    transaction = extractor.parse_block("01/02/2024 PAY 10.00 REF 10.00 CHARGE 10.00 R20.00")

    assert transaction.description == 'PAY REF CHARGE'
    assert transaction.amount == '10.00'
    assert transaction.fees == '10.00'


def test_empty_description_allowed(extractor):
    transaction = extractor.parse_block("01/02/2024 R1.00 R2.00")

    assert transaction.description == ''


def test_multiline_block_description_is_collapsed(extractor):
    transaction = extractor.parse_block("01/02/2024Transfer to\n  savings   account\nR100.00 R200.00")

    assert transaction.description == 'Transfer to savings account'


def test_description_is_idempotent(extractor):
    first = extractor.parse_block("01/02/2024  Coffee   shop\tCAPE  TOWN R12.00 R88.00")
    rebuilt = f"{first.date} {first.description} {first.amount} {first.balance}"
    second = extractor.parse_block(rebuilt)

    assert first.description == 'Coffee shop CAPE TOWN'
    assert second.description == first.description


def test_block_failure_is_contained(extractor, monkeypatch):
    def broken(block):
        raise RuntimeError("tokenizer exploded")

    monkeypatch.setattr(extractor.tokenizer, 'tokenize', broken)

    assert extractor.parse_block("01/02/2024 X R1.00 R2.00") is None


def test_segment_keeps_none_for_unusable_blocks(extractor):
    text = "Statement header\n01/02/2024A R1.00 R2.00\n02/02/2024B R3.00"

    results = extractor.segment(text)

    assert results[0] is None
    assert results[1].description == 'A'
    assert results[2] is None


def test_extract_from_text_filters_unusable_blocks(extractor):
    text = (
        "Capitec statement\n"
        "01/02/2024GROCERY STORE R1 234.56 R 50 000.00\n"
        "02/02/2024REFUND R10.00\n"
        "03/02/2024SALARY R10 000.00 R60 000.00\n"
    )

    transactions = extractor.extract_from_text(text)

    assert [t.description for t in transactions] == ['GROCERY STORE', 'SALARY']
    assert list(transactions[0].to_record()) == TRANSACTION_HEADERS


def test_no_transactions_is_terminal(extractor):
    with pytest.raises(EmptyResultError) as excinfo:
        extractor.extract_from_text("Nothing to see here\n01/02/2024 R1.00")

    assert excinfo.value.kind == ErrorKind.EMPTY_RESULT


def test_posted_on_comes_from_date_token(extractor):
    transaction = extractor.parse_block("2024-03-04 OPENING R1.00 R2.00")

    assert transaction.posted_on == datetime(2024, 3, 4)
    assert 'posted_on' not in transaction.to_record()


def test_impossible_date_is_kept_without_posted_on(extractor):
    transaction = extractor.parse_block("99/99/2024X R1.00 R2.00")

    assert transaction.date == '99/99/2024'
    assert transaction.posted_on is None


def test_amount_like_date_is_not_an_amount():
    config = TokenizerConfig(name='dotted', date_patterns=[r'\d{2}\.\d{2}\.\d{4}'],
                             currency_letters='', group_separator=',')
    transaction = TransactionExtractor(config).parse_block("05.06.2024Coffee 1,234.56 9,999.00")

    assert transaction.to_record() == {
        'Date': '05.06.2024',
        'Description': 'Coffee',
        'Amount': '1,234.56',
        'Fees': '',
        'Balance': '9,999.00',
    }
    assert transaction.posted_on == datetime(2024, 6, 5)


def test_collect_keeps_usable_results(extractor):
    parsed = extractor.segment("Header\n01/02/2024A R1.00 R2.00\n02/02/2024B R3.00")

    assert len(parsed) == 3
    assert [t.description for t in extractor.collect(parsed)] == ['A']
    with pytest.raises(EmptyResultError):
        extractor.collect([None, None])
