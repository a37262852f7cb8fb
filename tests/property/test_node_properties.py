"""Property tests for the transformation nodes."""

import asyncio
from typing import Any

from hypothesis import given
from hypothesis import strategies as st

from flowcore.nodes.transformation.data_filter import DataFilterNode
from flowcore.nodes.transformation.field_mapper import FieldMapperNode

scalars = st.one_of(st.none(), st.booleans(), st.integers(-1000, 1000), st.text(max_size=8))
records = st.dictionaries(st.sampled_from(["a", "b", "c"]), scalars, max_size=3)
operators = st.sampled_from(["equals", "not_equals", "greater_than", "less_than", "contains"])
conditions = st.fixed_dictionaries(
    {"field": st.sampled_from(["a", "b", "c", "d"]), "operator": operators, "value": scalars}
)


class TestDataFilterProperties:
    @given(data=st.lists(records, max_size=10), conds=st.lists(conditions, max_size=3))
    def test_never_raises_and_counts_kept_records(self, data: list[dict[str, Any]], conds: list[dict[str, Any]]) -> None:
        """Any well-formed input succeeds; output is a sub-sequence of the input."""
        result = asyncio.run(DataFilterNode().execute({"data": data, "conditions": conds}))

        assert result.success is True
        assert result.data is not None
        assert result.data.filtered_count == len(result.data.filtered)
        assert result.records_processed == len(result.data.filtered)
        remaining = iter(data)
        assert all(any(kept == item for item in remaining) for kept in result.data.filtered)

    @given(data=st.lists(records, max_size=10), conds=st.lists(conditions, max_size=3))
    def test_validate_is_pure(self, data: list[dict[str, Any]], conds: list[dict[str, Any]]) -> None:
        node = DataFilterNode()
        payload = {"data": data, "conditions": conds}

        assert node.validate(payload) == node.validate(payload)
        assert node.validate(payload) is True

    @given(data=st.lists(records, max_size=10), cond=conditions)
    def test_equals_and_not_equals_partition(self, data: list[dict[str, Any]], cond: dict[str, Any]) -> None:
        node = DataFilterNode()
        equal = asyncio.run(node.execute({"data": data, "conditions": [{**cond, "operator": "equals"}]}))
        different = asyncio.run(node.execute({"data": data, "conditions": [{**cond, "operator": "not_equals"}]}))

        assert equal.data is not None and different.data is not None
        assert equal.data.filtered_count + different.data.filtered_count == len(data)


class TestFieldMapperProperties:
    @given(source=st.lists(records, max_size=10))
    def test_array_length_preserved(self, source: list[dict[str, Any]]) -> None:
        mapping = [{"sourceField": "a", "targetField": "x", "transformation": "rename"}]

        result = asyncio.run(FieldMapperNode().execute({"source": source, "mapping": mapping}))

        assert result.success is True
        assert result.data is not None
        assert isinstance(result.data.mapped, list)
        assert len(result.data.mapped) == len(source)
        assert result.records_processed == len(source)
        for original, mapped in zip(source, result.data.mapped, strict=True):
            if "a" in original:
                assert mapped == {"x": original["a"]}
            else:
                assert mapped == {}
