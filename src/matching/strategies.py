"""
Catalogue of named, versioned search strategies.

A strategy version is a fixed sequence of builder calls. Strategies never
touch the network; they only decide which queries to run and in what order.
"""

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from functools import partial

from src.exceptions import InvalidStrategyError
from src.matching.models import NamedQuery, PersonRecord
from src.matching.query_builder import DEFAULT_DOB_RANGE_MONTHS, QueryCascadeBuilder

VERSION_ERROR_PREFIX = "Version not supported"

CascadeStep = Callable[[QueryCascadeBuilder], object]

QB = QueryCascadeBuilder

_nf_range_postcode = QB.add_non_fuzzy_gfd_range_postcode
_nf_range_postcode_wildcard = partial(
    QB.add_non_fuzzy_gfd_range_postcode, use_postcode_wildcard=True
)


@dataclass(frozen=True)
class SearchStrategy:
    """A named family of cascades, one per supported version."""

    name: str
    versions: Mapping[int, Sequence[CascadeStep]]
    default_version: int
    dob_range_months: int = DEFAULT_DOB_RANGE_MONTHS
    preprocess_names: bool = False

    def resolve_version(self, version: int | None) -> int:
        """
        Pick the version to run.

        Raises:
            InvalidStrategyError: If the version is not supported
        """
        resolved = self.default_version if version is None else version
        if resolved not in self.versions:
            raise InvalidStrategyError(
                f"{VERSION_ERROR_PREFIX} ({version}) For strategy ({self.name})"
            )
        return resolved

    def build(
        self,
        record: PersonRecord,
        version: int | None = None,
        dob_range_months: int | None = None,
        include_gender: bool = True,
    ) -> list[NamedQuery]:
        """
        Build the ordered cascade for a person record.

        Args:
            record: Person being searched for; must carry a birth date
            version: Strategy version, or None for the default
            dob_range_months: Overrides the strategy's birth date range width
            include_gender: Whether gender is forwarded to the registry

        Returns:
            Labelled queries in the order they must be issued

        Raises:
            InvalidStrategyError: If the version is not supported
            ConfigurationError: If the record has no birth date
        """
        steps = self.versions[self.resolve_version(version)]
        builder = QueryCascadeBuilder(
            record,
            dob_range_months=(
                self.dob_range_months if dob_range_months is None else dob_range_months
            ),
            preprocess_names=self.preprocess_names,
            include_gender=include_gender,
        )
        for step in steps:
            step(builder)
        return builder.build()


_STRATEGY3_V14: tuple[CascadeStep, ...] = (
    QB.add_non_fuzzy_gfd,
    QB.add_fuzzy_gfd,
    QB.add_fuzzy_all,
    QB.add_non_fuzzy_gfd_range,
    _nf_range_postcode,
    QB.add_fuzzy_gfd_range,
    QB.add_fuzzy_gfd_range_postcode,
)

_STRATEGY3_V15 = _STRATEGY3_V14 + (
    _nf_range_postcode_wildcard,
    QB.add_fuzzy_gfd_range_postcode_wildcard,
)

_STRATEGY3_VERSIONS: dict[int, tuple[CascadeStep, ...]] = {
    1: (QB.add_non_fuzzy_all, QB.add_fuzzy_all),
    2: (
        QB.add_non_fuzzy_all_postcode_wildcard,
        QB.add_non_fuzzy_all,
        QB.add_fuzzy_all,
    ),
    3: (
        QB.add_non_fuzzy_all_postcode_wildcard,
        QB.add_non_fuzzy_all,
        QB.add_fuzzy_gfd_postcode_wildcard,
        QB.add_fuzzy_all,
    ),
    4: (QB.add_non_fuzzy_gfd_range, QB.add_non_fuzzy_all, QB.add_fuzzy_all),
    5: (QB.add_fuzzy_gfd_range, QB.add_non_fuzzy_all, QB.add_fuzzy_all),
    6: (_nf_range_postcode, QB.add_non_fuzzy_all, QB.add_fuzzy_all),
    7: (
        _nf_range_postcode,
        _nf_range_postcode_wildcard,
        QB.add_non_fuzzy_all,
        QB.add_fuzzy_all,
    ),
    8: (
        QB.add_fuzzy_gfd_range_postcode,
        QB.add_fuzzy_gfd_range_postcode_wildcard,
        QB.add_non_fuzzy_all,
        QB.add_fuzzy_all,
    ),
    9: (
        _nf_range_postcode,
        _nf_range_postcode_wildcard,
        QB.add_fuzzy_gfd_range_postcode,
        QB.add_fuzzy_gfd_range_postcode_wildcard,
        QB.add_non_fuzzy_all,
        QB.add_fuzzy_all,
    ),
    10: (
        QB.add_non_fuzzy_gfd,
        _nf_range_postcode,
        _nf_range_postcode_wildcard,
        QB.add_non_fuzzy_all,
        QB.add_fuzzy_gfd,
        QB.add_fuzzy_gfd_range_postcode,
        QB.add_fuzzy_gfd_range_postcode_wildcard,
        QB.add_fuzzy_all,
    ),
    11: (
        QB.add_non_fuzzy_gfd,
        QB.add_non_fuzzy_gfd_range,
        QB.add_fuzzy_gfd,
        QB.add_fuzzy_all,
        _nf_range_postcode,
        QB.add_fuzzy_gfd_range_postcode,
        QB.add_non_fuzzy_all,
    ),
    12: (
        QB.add_non_fuzzy_gfd,
        QB.add_fuzzy_gfd,
        QB.add_fuzzy_all,
        QB.add_non_fuzzy_gfd_range,
        _nf_range_postcode,
        QB.add_fuzzy_gfd_range_postcode,
        QB.add_non_fuzzy_all,
    ),
    13: (
        QB.add_non_fuzzy_gfd,
        QB.add_fuzzy_gfd,
        QB.add_fuzzy_all,
        QB.add_non_fuzzy_gfd_range,
        QB.add_fuzzy_gfd_range,
        _nf_range_postcode,
        QB.add_fuzzy_gfd_range_postcode,
    ),
    14: _STRATEGY3_V14,
    15: _STRATEGY3_V15,
    16: (QB.add_non_fuzzy_gfd_postcode,) + _STRATEGY3_V15[1:],
}

STRATEGIES: dict[str, SearchStrategy] = {
    strategy.name: strategy
    for strategy in (
        SearchStrategy(
            name="strategy1",
            versions={
                3: (
                    QB.add_exact_gfd,
                    QB.add_exact_all,
                    QB.add_fuzzy_gfd,
                    QB.add_fuzzy_all,
                    QB.add_fuzzy_gfd_range,
                    QB.try_add_fuzzy_alt_dob,
                ),
            },
            default_version=3,
        ),
        SearchStrategy(
            name="strategy2",
            versions={
                1: (
                    QB.add_non_fuzzy_gfd,
                    QB.add_non_fuzzy_gfd_range,
                    QB.add_non_fuzzy_all_postcode_wildcard,
                    QB.add_non_fuzzy_all,
                    QB.add_fuzzy_gfd,
                    QB.add_fuzzy_gfd_range_postcode_wildcard,
                    QB.add_fuzzy_gfd_range_postcode,
                    QB.add_fuzzy_all,
                    QB.try_add_fuzzy_alt_dob,
                ),
            },
            default_version=1,
        ),
        SearchStrategy(
            name="strategy3",
            versions=_STRATEGY3_VERSIONS,
            default_version=14,
        ),
        SearchStrategy(
            name="strategy4",
            versions={
                1: _STRATEGY3_V14,
                2: (
                    QB.add_non_fuzzy_gfd,
                    QB.add_fuzzy_gfd,
                    QB.add_fuzzy_all,
                    _nf_range_postcode,
                    QB.add_fuzzy_gfd_range_postcode,
                ),
            },
            default_version=1,
            preprocess_names=True,
        ),
        SearchStrategy(
            name="strategy5",
            versions={
                1: (
                    QB.add_fuzzy_fdg_postcode,
                    QB.add_fuzzy_fd_postcode,
                    QB.add_fuzzy_all,
                ),
            },
            default_version=1,
            preprocess_names=True,
        ),
    )
}


def get_strategy(name: str) -> SearchStrategy:
    """
    Look up a strategy by name, ignoring case.

    Raises:
        InvalidStrategyError: If no strategy has that name
    """
    strategy = STRATEGIES.get(name.lower())
    if strategy is None:
        raise InvalidStrategyError(f"Unknown strategy '{name}'")
    return strategy
