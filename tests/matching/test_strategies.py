"""Tests for the search strategy catalogue."""

from datetime import date

import pytest

from src.exceptions import ConfigurationError, InvalidStrategyError
from src.matching.strategies import STRATEGIES, get_strategy
from tests.conftest import make_person


def _names(strategy: str, version: int | None = None, **person: object) -> list[str]:
    cascade = get_strategy(strategy).build(make_person(**person), version=version)
    return [named.name for named in cascade]


class TestStrategyLookup:
    """Tests for get_strategy."""

    def test_names_ignore_case(self) -> None:
        """Strategy names match regardless of case."""
        assert get_strategy("Strategy3") is STRATEGIES["strategy3"]
        assert get_strategy("STRATEGY1").name == "strategy1"

    def test_unknown_strategy_raises(self) -> None:
        """Unknown names are configuration errors naming the strategy."""
        with pytest.raises(InvalidStrategyError, match="strategy9"):
            get_strategy("strategy9")

    def test_unsupported_version_raises(self) -> None:
        """Unsupported versions name both the version and the strategy."""
        with pytest.raises(ConfigurationError) as exc_info:
            get_strategy("strategy1").build(make_person(), version=4)

        assert str(exc_info.value) == "Version not supported (4) For strategy (strategy1)"

    @pytest.mark.parametrize(
        "name,default_version",
        [
            ("strategy1", 3),
            ("strategy2", 1),
            ("strategy3", 14),
            ("strategy4", 1),
            ("strategy5", 1),
        ],
    )
    def test_default_versions(self, name: str, default_version: int) -> None:
        """Each strategy resolves a missing version to its default."""
        assert get_strategy(name).resolve_version(None) == default_version


class TestStrategy1:
    """Tests for strategy1."""

    def test_cascade_with_alternate_birth_date(self) -> None:
        """Exact, then fuzzy, then range, then the swapped birth date."""
        assert _names("strategy1", birth_date=date(2010, 3, 12)) == [
            "ExactGFD",
            "ExactAll",
            "FuzzyGFD",
            "FuzzyAll",
            "FuzzyGFDRange",
            "FuzzyAltDob",
        ]

    def test_cascade_without_alternate_birth_date(self) -> None:
        """The swapped birth date query is left out when the day exceeds 12."""
        names = _names("strategy1", birth_date=date(2008, 9, 20))

        assert len(names) == 5
        assert "FuzzyAltDob" not in names

    def test_missing_birth_date_raises(self) -> None:
        """A strategy cannot build a cascade without a birth date."""
        with pytest.raises(ConfigurationError):
            get_strategy("strategy1").build(make_person(birth_date=None))


class TestStrategy2:
    """Tests for strategy2."""

    def test_cascade(self) -> None:
        """Non-fuzzy queries run before fuzzy ones."""
        assert _names("strategy2", birth_date=date(2010, 3, 1)) == [
            "NonFuzzyGFD",
            "NonFuzzyGFDRange",
            "NonFuzzyAllPostcodeWildcard",
            "NonFuzzyAll",
            "FuzzyGFD",
            "FuzzyGFDRangePostcodeWildcard",
            "FuzzyGFDRangePostcode",
            "FuzzyAll",
            "FuzzyAltDob",
        ]


class TestStrategy3:
    """Tests for strategy3."""

    def test_default_version_cascade(self) -> None:
        """Version 14 is the default."""
        assert _names("strategy3") == [
            "NonFuzzyGFD",
            "FuzzyGFD",
            "FuzzyAll",
            "NonFuzzyGFDRange",
            "NonFuzzyGFDRangePostcode",
            "FuzzyGFDRange",
            "FuzzyGFDRangePostcode",
        ]

    def test_version_1(self) -> None:
        """The first version runs the all-fields queries only."""
        assert _names("strategy3", version=1) == ["NonFuzzyAll", "FuzzyAll"]

    def test_version_15_adds_wildcards(self) -> None:
        """Version 15 extends version 14 with the postcode area queries."""
        assert _names("strategy3", version=15)[-2:] == [
            "NonFuzzyGFDRangePostcodeWildcard",
            "FuzzyGFDRangePostcodeWildcard",
        ]

    def test_version_16_starts_with_postcode(self) -> None:
        """Version 16 constrains the first non-fuzzy query by postcode."""
        names = _names("strategy3", version=16)

        assert names[0] == "NonFuzzyGFDPostcode"
        assert "NonFuzzyGFD" not in names
        assert len(names) == 9

    @pytest.mark.parametrize("version", range(1, 17))
    def test_every_version_builds(self, version: int) -> None:
        """All sixteen versions produce a cascade with unique labels."""
        names = _names("strategy3", version=version)

        assert names
        assert len(names) == len(set(names))

    def test_version_17_is_unsupported(self) -> None:
        """Versions past the catalogue are rejected."""
        with pytest.raises(InvalidStrategyError, match=r"\(17\) For strategy \(strategy3\)"):
            get_strategy("strategy3").build(make_person(), version=17)


class TestStrategy4:
    """Tests for strategy4."""

    def test_names_are_preprocessed(self) -> None:
        """Given names are split and trailing asides dropped."""
        cascade = get_strategy("strategy4").build(
            make_person(given="Mary Ann", family="Smith (Jones)")
        )

        for named in cascade:
            assert named.query.given == ("Mary", "Ann")
            assert named.query.family == "Smith"

    def test_version_2_drops_plain_ranges(self) -> None:
        """Version 2 removes the range queries without a postcode."""
        names = _names("strategy4", version=2)

        assert "NonFuzzyGFDRange" not in names
        assert "FuzzyGFDRange" not in names
        assert names == [
            "NonFuzzyGFD",
            "FuzzyGFD",
            "FuzzyAll",
            "NonFuzzyGFDRangePostcode",
            "FuzzyGFDRangePostcode",
        ]


class TestStrategy5:
    """Tests for strategy5."""

    def test_cascade_leaves_out_given_name_first(self) -> None:
        """Family-based postcode queries run before the all-fields query."""
        assert _names("strategy5") == ["FuzzyFDGPostcode", "FuzzyFDPostcode", "FuzzyAll"]
