import pytest

from flink.sql.backend.gateway.models import (
    ExecuteStatementRequest,
    FetchResultsResponse,
    OpenSessionRequest,
    OperationStatusResponse,
)
from flink.sql.backend.gateway.utils.constants import TypeRoot
from flink.sql.backend.gateway.utils.normalize import (
    normalize_type_name,
    parse_column,
    parse_logical_type,
)
from flink.sql.backend.types import (
    ColumnMeta,
    LogicalType,
    Operation,
    OperationState,
    ResultType,
    describe_columns,
)
from flink.sql.exc import InvalidServerResponseError


class TestRequests:
    def test_open_session_request(self):
        assert OpenSessionRequest().to_dict() == {"properties": {}}
        assert OpenSessionRequest({"a": "b"}, "name").to_dict() == {
            "properties": {"a": "b"},
            "sessionName": "name",
        }

    def test_execute_statement_request(self):
        assert ExecuteStatementRequest("SELECT 1").to_dict() == {
            "statement": "SELECT 1"
        }
        request = ExecuteStatementRequest(
            "SELECT 1", execution_config={"k": "v"}, execution_timeout=30
        )
        assert request.to_dict() == {
            "statement": "SELECT 1",
            "executionConfig": {"k": "v"},
            "executionTimeout": 30,
        }


class TestResponses:
    def test_status_with_error_message(self):
        response = OperationStatusResponse.from_dict(
            {"status": "ERROR", "errorMessage": "boom"}
        )
        assert response.state == OperationState.ERROR
        assert response.error_message == "boom"

    def test_status_missing(self):
        with pytest.raises(InvalidServerResponseError):
            OperationStatusResponse.from_dict({})

    def test_flattened_result_shape(self):
        page = FetchResultsResponse.from_dict(
            {
                "columns": [{"name": "a", "type": "BIGINT NOT NULL"}],
                "rows": [[1], [2]],
                "nextResultUri": "",
            }
        )
        assert page.columns[0].remote_type == TypeRoot.BIGINT
        assert page.columns[0].nullable is False
        assert page.rows == [[1], [2]]
        assert page.next_token is None
        assert page.row_kinds == ["INSERT", "INSERT"]

    def test_row_kinds(self):
        page = FetchResultsResponse.from_dict(
            {
                "results": {
                    "columns": [{"name": "a", "logicalType": {"type": "INTEGER"}}],
                    "data": [
                        {"kind": "INSERT", "fields": [1]},
                        {"kind": "UPDATE_BEFORE", "fields": [1]},
                    ],
                }
            }
        )
        assert page.row_kinds == ["INSERT", "UPDATE_BEFORE"]

    def test_not_ready(self):
        page = FetchResultsResponse.from_dict({"resultType": "NOT_READY"})
        assert page.result_type == ResultType.NOT_READY
        assert not page.ready

    @pytest.mark.parametrize(
        "data",
        [
            {"resultType": "SOMETHING"},
            {"rows": ["not a row"]},
            {"results": {"data": [{"kind": "INSERT"}]}},
            {"columns": [{"name": "no type"}]},
        ],
    )
    def test_malformed_results(self, data):
        with pytest.raises(InvalidServerResponseError):
            FetchResultsResponse.from_dict(data)


class TestNormalize:
    @pytest.mark.parametrize(
        "type_name,expected",
        [
            ("INT", TypeRoot.INTEGER),
            ("STRING", TypeRoot.VARCHAR),
            ("VARCHAR(10)", TypeRoot.VARCHAR),
            ("DECIMAL(10, 2)", TypeRoot.DECIMAL),
            ("BYTES", TypeRoot.VARBINARY),
            ("TIMESTAMP(3)", TypeRoot.TIMESTAMP),
            ("TIMESTAMP(3) WITH LOCAL TIME ZONE", TypeRoot.TIMESTAMP_LTZ),
            ("TIMESTAMP_LTZ(3)", TypeRoot.TIMESTAMP_LTZ),
            ("ARRAY<INT>", TypeRoot.ARRAY),
            ("ROW<a INT, b STRING>", TypeRoot.ROW),
            ("INTERVAL YEAR(2) TO MONTH", TypeRoot.INTERVAL_YEAR_MONTH),
            ("INTERVAL DAY(2) TO SECOND(3)", TypeRoot.INTERVAL_DAY_TIME),
            ("TIMESTAMP_WITHOUT_TIME_ZONE", TypeRoot.TIMESTAMP),
            ("boolean", TypeRoot.BOOLEAN),
        ],
    )
    def test_normalize_type_name(self, type_name, expected):
        assert normalize_type_name(type_name) == expected

    def test_parse_logical_type_from_string(self):
        logical_type = parse_logical_type("DECIMAL(10, 2) NOT NULL")
        assert logical_type.type_root == TypeRoot.DECIMAL
        assert logical_type.nullable is False

    def test_parse_logical_type_rejects_other_values(self):
        with pytest.raises(InvalidServerResponseError):
            parse_logical_type(42)
        with pytest.raises(InvalidServerResponseError):
            parse_logical_type({"nullable": True})

    def test_column_nullable_overrides_type(self):
        column = parse_column({"name": "a", "type": "INT", "nullable": False})
        assert column.nullable is False


class TestTypes:
    def test_advance_to_ignores_regression(self):
        finished = Operation("op", "s", OperationState.FINISHED)
        running = Operation("op", "s", OperationState.RUNNING)
        assert finished.advance_to(running) is finished
        assert running.advance_to(finished) is finished

    def test_describe_columns(self):
        columns = [
            ColumnMeta(
                "price",
                LogicalType(
                    TypeRoot.DECIMAL,
                    False,
                    {"type": "DECIMAL", "precision": 10, "scale": 2},
                ),
            ),
            ColumnMeta("name", LogicalType(TypeRoot.VARCHAR)),
        ]
        assert describe_columns(columns) == [
            ("price", "decimal", None, None, 10, 2, False),
            ("name", "varchar", None, None, None, None, True),
        ]
