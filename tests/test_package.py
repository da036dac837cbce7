"""Tests for reactive_data package exports and metadata."""

import pytest

import reactive_data


class TestPackageMetadata:
    """Package-level exports and metadata."""

    def test_version_string(self) -> None:
        assert isinstance(reactive_data.__version__, str)
        assert "0.1.0" in reactive_data.__version__

    def test_all_exports_resolvable(self) -> None:
        for name in reactive_data.__all__:
            getattr(reactive_data, name)

    def test_lazy_manager(self) -> None:
        from reactive_data.manager import ReactiveDataManager

        assert reactive_data.ReactiveDataManager is ReactiveDataManager

    def test_invalid_attribute_raises(self) -> None:
        with pytest.raises(AttributeError, match="no attribute"):
            reactive_data.nonexistent_thing  # type: ignore[attr-defined]  # noqa: B018


class TestMissSentinel:
    """MISS is a falsy singleton distinct from None."""

    def test_singleton(self) -> None:
        assert reactive_data.Miss() is reactive_data.MISS

    def test_distinct_from_none(self) -> None:
        assert reactive_data.MISS is not None
        assert reactive_data.MISS != None  # noqa: E711

    def test_falsy_and_repr(self) -> None:
        assert not reactive_data.MISS
        assert repr(reactive_data.MISS) == "MISS"

    def test_pickle_roundtrip(self) -> None:
        import pickle

        assert pickle.loads(pickle.dumps(reactive_data.MISS)) is reactive_data.MISS
