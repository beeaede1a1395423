"""
Unit tests for the CSV format.
"""
import io

import pytest

from ypbank.csv_format import CSV_FORMAT, HEADER, CsvFormat, CsvRecordReader, encode_row, quote_field
from ypbank.exceptions import EndOfInputError, MalformedRowError
from ypbank.models import TransactionRecord, TransactionStatus, TransactionType
from ypbank.streaming import Parser, ParserState, Serializer

CSV_HEADER = "TX_ID,TX_TYPE,FROM_USER_ID,TO_USER_ID,AMOUNT,TIMESTAMP,STATUS,DESCRIPTION\n"


def test_header_constant():
    assert HEADER + "\n" == CSV_HEADER


def test_encode_row_sample(sample_record):
    assert encode_row(sample_record) == (
        '1001,DEPOSIT,0,501,50000,1672531200000,SUCCESS,"Initial account funding"\n'
    )


def test_quote_field_doubles_quotes():
    assert quote_field('Say "hi"') == '"Say ""hi"""'
    assert quote_field("") == '""'


def test_read_single_record(make_source, sample_record):
    source = make_source(
        CSV_HEADER
        + '1001,DEPOSIT,0,501,50000,1672531200000,SUCCESS,"Initial account funding"\n'
    )
    parser = Parser(CSV_FORMAT, source)

    assert next(parser) == sample_record
    assert list(parser) == []
    assert parser.state is ParserState.EXHAUSTED
    assert isinstance(parser.error, EndOfInputError)


def test_read_multiple_records(make_source):
    source = make_source(
        CSV_HEADER
        + '1,DEPOSIT,0,10,100,1000,SUCCESS,"Desc 1"\n'
        + '2,WITHDRAWAL,10,0,50,2000,PENDING,"Desc 2"\n'
    )

    records = list(Parser(CSV_FORMAT, source))

    assert [r.id for r in records] == [1, 2]
    assert records[1].kind is TransactionType.WITHDRAWAL
    assert records[1].from_user_id == 10
    assert records[1].to_user_id == 0
    assert records[1].amount == 50
    assert records[1].timestamp == 2000
    assert records[1].status is TransactionStatus.PENDING
    assert records[1].description == "Desc 2"


def test_read_many_rows_one_at_a_time(make_source):
    rows = "".join(f'{i},TRANSFER,1,2,{i * 10},{i},SUCCESS,"row {i}"\n' for i in range(1, 8))
    parser = Parser(CsvFormat(), make_source(CSV_HEADER + rows))

    assert [r.amount for r in parser] == [10, 20, 30, 40, 50, 60, 70]
    assert parser.state is ParserState.EXHAUSTED
    assert parser.records_read == 7


def test_row_with_extra_field_is_malformed(make_source):
    source = make_source(CSV_HEADER + '1,DEPOSIT,0,1,2,3,SUCCESS,"ok",EXTRA\n')
    parser = Parser(CSV_FORMAT, source)

    assert list(parser) == []
    assert parser.state is ParserState.FAILED
    assert isinstance(parser.error, MalformedRowError)
    assert parser.error.details["row"] == 1


def test_row_missing_description_is_malformed(make_source):
    source = make_source(CSV_HEADER + "1,DEPOSIT,0,1,2,3,SUCCESS\n")
    parser = Parser(CSV_FORMAT, source)

    assert list(parser) == []
    assert parser.state is ParserState.FAILED
    assert isinstance(parser.error, MalformedRowError)
    assert parser.error.details["row"] == 1


def test_rows_before_bad_row_are_returned(make_source):
    source = make_source(
        CSV_HEADER
        + '1,DEPOSIT,0,1,2,3,SUCCESS,"first"\n'
        + '2,DEPOSIT,0,1,2,3,SUCCESS,"second"\n'
        + '3,DEPOSIT,0,1,2,3,SUCCESS,"third",X,Y\n'
        + '4,DEPOSIT,0,1,2,3,SUCCESS,"fourth"\n'
    )
    parser = Parser(CSV_FORMAT, source)

    assert [r.id for r in parser] == [1, 2]
    assert parser.state is ParserState.FAILED
    assert isinstance(parser.error, MalformedRowError)
    assert parser.error.details["row"] == 3


class FailingBytesIO(io.BytesIO):
    """Binary source whose every read fails."""

    def __init__(self):
        super().__init__()
        self.reads = 0

    def _fail(self, *args, **kwargs):
        self.reads += 1
        raise OSError("device not ready")

    read = read1 = readinto = readinto1 = readline = _fail


def test_source_failure_is_wrapped():
    source = FailingBytesIO()
    parser = Parser(CSV_FORMAT, source)

    assert next(parser, None) is None
    assert parser.state is ParserState.FAILED
    assert isinstance(parser.error, MalformedRowError)
    assert isinstance(parser.error.__cause__, OSError)

    reads = source.reads
    assert next(parser, None) is None
    assert source.reads == reads


def test_read_trims_whitespace(make_source):
    source = make_source(
        CSV_HEADER + '5, DEPOSIT , 0, 7, 9, 11, FAILURE, "padded"\n'
    )

    record = CSV_FORMAT.read(CSV_FORMAT.build_reader(source))

    assert record.kind is TransactionType.DEPOSIT
    assert record.status is TransactionStatus.FAILURE
    assert record.description == "padded"


def test_read_unquotes_description(make_source):
    source = make_source(CSV_HEADER + '3,DEPOSIT,0,1,2,3,SUCCESS,"A, ""quoted"" note"\n')

    record = CsvRecordReader(source).read_record()

    assert record.description == 'A, "quoted" note'


def test_invalid_value_is_malformed_row(make_source):
    source = make_source(
        CSV_HEADER + 'NOT_A_NUMBER,DEPOSIT,0,501,50000,1672531200000,SUCCESS,"Bad ID"\n'
    )
    parser = Parser(CSV_FORMAT, source)

    assert next(parser, None) is None
    assert parser.state is ParserState.FAILED
    assert isinstance(parser.error, MalformedRowError)
    assert parser.error.details["row"] == 1


def test_unknown_status_is_malformed_row(make_source):
    source = make_source(CSV_HEADER + '1,DEPOSIT,0,1,1,1,DONE,"x"\n')

    with pytest.raises(MalformedRowError):
        CsvRecordReader(source).read_record()


def test_wrong_header_is_malformed(make_source):
    source = make_source("TX_ID,TX_TYPE,AMOUNT\n1,DEPOSIT,5\n")

    with pytest.raises(MalformedRowError) as exc_info:
        CsvRecordReader(source).read_record()

    assert "FROM_USER_ID" in exc_info.value.details["missing"]


@pytest.mark.parametrize("text", ["", CSV_HEADER])
def test_no_rows_is_end_of_input(make_source, text):
    with pytest.raises(EndOfInputError):
        CsvRecordReader(make_source(text)).read_record()


def test_serializer_writes_header_once():
    first = TransactionRecord(
        id=1001,
        kind=TransactionType.DEPOSIT,
        from_user_id=0,
        to_user_id=501,
        amount=50000,
        timestamp=1672531200000,
        status=TransactionStatus.SUCCESS,
        description="Initial account, funding",
    )
    second = TransactionRecord(
        id=1002,
        kind=TransactionType.WITHDRAWAL,
        from_user_id=501,
        to_user_id=0,
        amount=100,
        timestamp=1672531300000,
        status=TransactionStatus.PENDING,
        description="Payment",
    )
    serializer = Serializer(CSV_FORMAT, io.BytesIO())

    serializer.serialize([first])
    serializer.serialize([second])

    assert serializer.into_inner().getvalue().decode() == (
        CSV_HEADER
        + '1001,DEPOSIT,0,501,50000,1672531200000,SUCCESS,"Initial account, funding"\n'
        + '1002,WITHDRAWAL,501,0,100,1672531300000,PENDING,"Payment"\n'
    )


def test_csv_round_trip(sample_record):
    record = sample_record.model_copy(update={"description": 'He said "ok", then left'})
    sink = io.BytesIO()
    Serializer(CSV_FORMAT, sink).serialize([sample_record, record])
    sink.seek(0)

    assert list(Parser(CSV_FORMAT, sink)) == [sample_record, record]
