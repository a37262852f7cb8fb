"""Tests for FieldMapperNode."""

from typing import Any

import pytest

from flowcore.nodes.transformation.field_mapper import FieldMapperNode


def _mapping(source: str, target: str, transformation: str = "rename", **parameters: Any) -> dict[str, Any]:
    entry: dict[str, Any] = {"sourceField": source, "targetField": target, "transformation": transformation}
    if parameters:
        entry["parameters"] = parameters
    return entry


class TestRename:
    @pytest.mark.asyncio
    async def test_object_source_yields_object(self) -> None:
        result = await FieldMapperNode().execute(
            {"source": {"first_name": "John", "age": 40}, "mapping": [_mapping("first_name", "firstName")]}
        )

        assert result.success is True
        assert result.to_dict()["data"] == {"mapped": {"firstName": "John"}}
        assert result.records_processed == 1

    @pytest.mark.asyncio
    async def test_array_source_yields_array(self, people: list[dict[str, Any]]) -> None:
        result = await FieldMapperNode().execute({"source": people, "mapping": [_mapping("name", "who")]})

        assert result.success is True
        assert result.to_dict()["data"] == {"mapped": [{"who": "ada"}, {"who": "grace"}, {"who": "linus"}]}
        assert result.records_processed == 3

    @pytest.mark.asyncio
    async def test_missing_source_omits_target(self) -> None:
        result = await FieldMapperNode().execute(
            {"source": {"a": 1}, "mapping": [_mapping("a", "x"), _mapping("b", "y")]}
        )

        assert result.to_dict()["data"] == {"mapped": {"x": 1}}

    @pytest.mark.asyncio
    async def test_dotted_source(self) -> None:
        result = await FieldMapperNode().execute(
            {"source": {"user": {"email": "a@b.c"}}, "mapping": [_mapping("user.email", "email")]}
        )

        assert result.to_dict()["data"] == {"mapped": {"email": "a@b.c"}}

    @pytest.mark.asyncio
    async def test_strict_mode_fails_on_missing_source(self) -> None:
        result = await FieldMapperNode({"strict": True}).execute(
            {"source": {"a": 1}, "mapping": [_mapping("b", "y")]}
        )

        assert result.success is False
        assert result.error == "Field 'b' not found in source record"


class TestConstant:
    @pytest.mark.asyncio
    async def test_constant_ignores_source(self) -> None:
        result = await FieldMapperNode().execute(
            {"source": {}, "mapping": [_mapping("unused", "kind", "constant", constantValue="customer")]}
        )

        assert result.to_dict()["data"] == {"mapped": {"kind": "customer"}}

    @pytest.mark.asyncio
    async def test_constant_without_parameters_is_none(self) -> None:
        result = await FieldMapperNode().execute({"source": {}, "mapping": [_mapping("unused", "kind", "constant")]})

        assert result.data is not None
        assert result.data.mapped == {"kind": None}


class TestFunction:
    @pytest.mark.asyncio
    async def test_expression(self) -> None:
        result = await FieldMapperNode().execute(
            {"source": [{"name": "ada"}], "mapping": [_mapping("name", "NAME", "function", expression="upper(value)")]}
        )

        assert result.to_dict()["data"] == {"mapped": [{"NAME": "ADA"}]}

    @pytest.mark.asyncio
    async def test_expression_reads_row(self) -> None:
        result = await FieldMapperNode().execute(
            {
                "source": {"first": "Ada", "last": "Lovelace"},
                "mapping": [_mapping("first", "full", "function", expression="concat(value, ' ', row['last'])")],
            }
        )

        assert result.to_dict()["data"] == {"mapped": {"full": "Ada Lovelace"}}

    @pytest.mark.asyncio
    async def test_function_body_alias(self) -> None:
        """Older flow definitions carry the expression under functionBody."""
        result = await FieldMapperNode().execute(
            {"source": {"n": 4}, "mapping": [_mapping("n", "double", "function", functionBody="value * 2")]}
        )

        assert result.to_dict()["data"] == {"mapped": {"double": 8}}

    @pytest.mark.asyncio
    async def test_function_without_expression_copies_value(self) -> None:
        result = await FieldMapperNode().execute({"source": {"n": 4}, "mapping": [_mapping("n", "m", "function")]})

        assert result.to_dict()["data"] == {"mapped": {"m": 4}}

    @pytest.mark.asyncio
    async def test_evaluation_error_fails_call(self) -> None:
        result = await FieldMapperNode().execute(
            {"source": {"n": "abc"}, "mapping": [_mapping("n", "num", "function", expression="int(value)")]}
        )

        assert result.success is False
        assert result.error is not None
        assert result.error.startswith("Transformation for field 'num' failed")

    @pytest.mark.asyncio
    async def test_passthrough_keeps_source_value(self) -> None:
        result = await FieldMapperNode({"on_function_error": "passthrough"}).execute(
            {"source": {"n": "abc"}, "mapping": [_mapping("n", "num", "function", expression="int(value)")]}
        )

        assert result.success is True
        assert result.to_dict()["data"] == {"mapped": {"num": "abc"}}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("value", "expression"),
        [(1e308, "int(value * 10)"), ("ab", "value * 99999999999999999999")],
    )
    async def test_passthrough_covers_overflow_and_repetition(self, value: Any, expression: str) -> None:
        result = await FieldMapperNode({"on_function_error": "passthrough"}).execute(
            {"source": {"n": value}, "mapping": [_mapping("n", "out", "function", expression=expression)]}
        )

        assert result.success is True
        assert result.to_dict()["data"] == {"mapped": {"out": value}}

    @pytest.mark.asyncio
    async def test_oversized_repetition_fails_call(self) -> None:
        result = await FieldMapperNode().execute(
            {"source": {"n": "ab"}, "mapping": [_mapping("n", "out", "function", expression="value * 1000000000")]}
        )

        assert result.success is False
        assert result.error is not None
        assert result.error.startswith("Transformation for field 'out' failed: Mult failed")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "expression",
        [
            "__import__('os').system('id')",
            "value.__class__",
            "open('/etc/passwd')",
            "[x for x in value]",
        ],
    )
    async def test_forbidden_expression_is_failed_result(self, expression: str) -> None:
        """Mapping code is never executed; forbidden constructs fail the call."""
        result = await FieldMapperNode().execute(
            {"source": {"n": "x"}, "mapping": [_mapping("n", "out", "function", expression=expression)]}
        )

        assert result.success is False
        assert result.error is not None
        assert result.error.startswith("Invalid expression for field 'out'")

    @pytest.mark.asyncio
    async def test_syntax_error_is_failed_result(self) -> None:
        result = await FieldMapperNode().execute(
            {"source": {"n": 1}, "mapping": [_mapping("n", "out", "function", expression="value +")]}
        )

        assert result.success is False
        assert result.error is not None
        assert "Invalid expression for field 'out'" in result.error


class TestValidation:
    @pytest.mark.asyncio
    async def test_unknown_transformation(self) -> None:
        result = await FieldMapperNode().execute({"source": {}, "mapping": [_mapping("a", "b", "explode")]})

        assert result.success is False

    def test_validate(self) -> None:
        node = FieldMapperNode()

        assert node.validate({"source": {}, "mapping": []}) is True
        assert node.validate({"source": "text", "mapping": []}) is False
        assert node.validate({"mapping": []}) is False

    def test_invalid_config(self) -> None:
        from flowcore.contracts.errors import NodeConfigError

        with pytest.raises(NodeConfigError):
            FieldMapperNode({"on_function_error": "ignore"})
