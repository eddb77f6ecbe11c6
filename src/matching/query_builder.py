"""
Search query cascade builder.

Each ``add_*`` method appends one labelled registry query shaped from the
person record. Labels are unique: adding a label a second time replaces the
query but keeps its original position in the cascade.

Query families:
- Exact: exact-match flag set, historical records included
- Non-fuzzy: exact-match flag cleared, historical records included
- Fuzzy: fuzzy-match flag set
"""

import calendar
import re
from dataclasses import replace
from datetime import date

from src.exceptions import ConfigurationError
from src.matching.models import SEARCH_DATE_FORMAT, NamedQuery, PersonRecord, SearchQuery

DEFAULT_DOB_RANGE_MONTHS = 6

# Trailing parenthesised aside, e.g. "Smith (Jones)"
_TRAILING_ASIDE = re.compile(r"\s*\([^)]*\)\s*$")


def add_months(value: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the target month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def postcode_wildcard(postcode: str | None) -> str | None:
    """First two characters followed by ``*``; short codes are returned unchanged."""
    if postcode is None or len(postcode) <= 2:
        return postcode
    return postcode[:2] + "*"


def alternate_birth_date(birth_date: date) -> date | None:
    """Birth date with day and month swapped, or None if the day is above 12."""
    if birth_date.day > 12:
        return None
    return date(birth_date.year, birth_date.day, birth_date.month)


class QueryCascadeBuilder:
    """Builds an ordered cascade of registry queries for one person record."""

    def __init__(
        self,
        record: PersonRecord,
        dob_range_months: int = DEFAULT_DOB_RANGE_MONTHS,
        preprocess_names: bool = False,
        include_gender: bool = True,
    ):
        if record.birth_date is None:
            raise ConfigurationError("Birthdate is required for search queries")

        self.record = record
        self.birth_date: date = record.birth_date
        self.dob_range_months = dob_range_months
        self.preprocess_names = preprocess_names
        self.include_gender = include_gender
        self._queries: dict[str, SearchQuery] = {}

    # ------------------------------------------------------------------
    # Field shaping
    # ------------------------------------------------------------------

    def _given(self, preprocess: bool | None) -> tuple[str, ...] | None:
        given = self.record.given
        if given is None:
            return None
        if self._preprocess(preprocess):
            return tuple(given.split())
        return (given,)

    def _family(self, preprocess: bool | None) -> str | None:
        family = self.record.family
        if family is None or not self._preprocess(preprocess):
            return family
        return _TRAILING_ASIDE.sub("", family)

    def _preprocess(self, preprocess: bool | None) -> bool:
        return self.preprocess_names if preprocess is None else preprocess

    def _gender(self) -> str | None:
        return self.record.gender if self.include_gender else None

    def _dob(self) -> tuple[str, ...]:
        return ("eq" + self.birth_date.strftime(SEARCH_DATE_FORMAT),)

    def _dob_range(self) -> tuple[str, ...]:
        lower = add_months(self.birth_date, -self.dob_range_months)
        upper = add_months(self.birth_date, self.dob_range_months)
        return (
            "ge" + lower.strftime(SEARCH_DATE_FORMAT),
            "le" + upper.strftime(SEARCH_DATE_FORMAT),
        )

    def _add(self, name: str, query: SearchQuery) -> None:
        self._queries[name] = query

    def _gfd(
        self,
        preprocess: bool | None,
        birthdate: tuple[str, ...],
        **flags: bool,
    ) -> SearchQuery:
        """Given, family and birth date query with the supplied flags."""
        return SearchQuery(
            given=self._given(preprocess),
            family=self._family(preprocess),
            birthdate=birthdate,
            **flags,
        )

    def _all(
        self,
        preprocess: bool | None,
        birthdate: tuple[str, ...],
        postcode: str | None,
        **flags: bool,
    ) -> SearchQuery:
        """Query carrying every demographic field on the record."""
        return SearchQuery(
            given=self._given(preprocess),
            family=self._family(preprocess),
            birthdate=birthdate,
            gender=self._gender(),
            phone=self.record.phone,
            email=self.record.email,
            address_postalcode=postcode,
            **flags,
        )

    # ------------------------------------------------------------------
    # Exact
    # ------------------------------------------------------------------

    def add_exact_gfd(self, preprocess: bool | None = None) -> None:
        self._add(
            "ExactGFD",
            self._gfd(preprocess, self._dob(), exact_match=True, history=True),
        )

    def add_exact_all(self, preprocess: bool | None = None) -> None:
        self._add(
            "ExactAll",
            self._all(
                preprocess,
                self._dob(),
                self.record.address_postal_code,
                exact_match=True,
                history=True,
            ),
        )

    # ------------------------------------------------------------------
    # Non-fuzzy
    # ------------------------------------------------------------------

    def add_non_fuzzy_gfd(self, preprocess: bool | None = None) -> None:
        self._add(
            "NonFuzzyGFD",
            self._gfd(preprocess, self._dob(), exact_match=False, history=True),
        )

    def add_non_fuzzy_gfd_range(self, preprocess: bool | None = None) -> None:
        self._add(
            "NonFuzzyGFDRange",
            self._gfd(preprocess, self._dob_range(), exact_match=False, history=True),
        )

    def add_non_fuzzy_gfd_postcode(self, preprocess: bool | None = None) -> None:
        query = self._gfd(preprocess, self._dob(), exact_match=False, history=True)
        self._add(
            "NonFuzzyGFDPostcode",
            _with_postcode(query, self.record.address_postal_code),
        )

    def add_non_fuzzy_gfd_range_postcode(
        self,
        use_postcode_wildcard: bool = False,
        preprocess: bool | None = None,
    ) -> None:
        """
        Add a non-fuzzy birth date range query constrained by postcode.

        Args:
            use_postcode_wildcard: Search on the postcode area only. The
                wildcard variant is stored under its own label.
            preprocess: Override the builder's name preprocessing default
        """
        postcode = self.record.address_postal_code
        name = "NonFuzzyGFDRangePostcode"
        if use_postcode_wildcard:
            postcode = postcode_wildcard(postcode)
            name = "NonFuzzyGFDRangePostcodeWildcard"

        query = self._gfd(preprocess, self._dob_range(), exact_match=False, history=True)
        self._add(name, _with_postcode(query, postcode))

    def add_non_fuzzy_all(self, preprocess: bool | None = None) -> None:
        self._add(
            "NonFuzzyAll",
            self._all(
                preprocess,
                self._dob(),
                self.record.address_postal_code,
                exact_match=False,
                history=True,
            ),
        )

    def add_non_fuzzy_all_postcode_wildcard(self, preprocess: bool | None = None) -> None:
        self._add(
            "NonFuzzyAllPostcodeWildcard",
            self._all(
                preprocess,
                self._dob(),
                postcode_wildcard(self.record.address_postal_code),
                exact_match=False,
                history=True,
            ),
        )

    # ------------------------------------------------------------------
    # Fuzzy
    # ------------------------------------------------------------------

    def add_fuzzy_gfd(self, preprocess: bool | None = None) -> None:
        self._add("FuzzyGFD", self._gfd(preprocess, self._dob(), fuzzy_match=True))

    def add_fuzzy_all(self, preprocess: bool | None = None) -> None:
        self._add(
            "FuzzyAll",
            self._all(
                preprocess,
                self._dob(),
                self.record.address_postal_code,
                fuzzy_match=True,
            ),
        )

    def add_fuzzy_gfd_range(self, preprocess: bool | None = None) -> None:
        self._add(
            "FuzzyGFDRange",
            self._gfd(preprocess, self._dob_range(), fuzzy_match=True),
        )

    def add_fuzzy_gfd_range_postcode(self, preprocess: bool | None = None) -> None:
        query = self._gfd(preprocess, self._dob_range(), fuzzy_match=True)
        self._add(
            "FuzzyGFDRangePostcode",
            _with_postcode(query, self.record.address_postal_code),
        )

    def add_fuzzy_gfd_range_postcode_wildcard(self, preprocess: bool | None = None) -> None:
        query = self._gfd(preprocess, self._dob_range(), fuzzy_match=True)
        self._add(
            "FuzzyGFDRangePostcodeWildcard",
            _with_postcode(query, postcode_wildcard(self.record.address_postal_code)),
        )

    def add_fuzzy_gfd_postcode_wildcard(self, preprocess: bool | None = None) -> None:
        query = self._gfd(preprocess, self._dob(), fuzzy_match=True)
        self._add(
            "FuzzyGFDPostcodeWildcard",
            _with_postcode(query, postcode_wildcard(self.record.address_postal_code)),
        )

    def add_fuzzy_fdg_postcode(self, preprocess: bool | None = None) -> None:
        """Family, birth date, gender and postcode; the given name is left out."""
        self._add(
            "FuzzyFDGPostcode",
            SearchQuery(
                fuzzy_match=True,
                family=self._family(preprocess),
                birthdate=self._dob(),
                gender=self._gender(),
                address_postalcode=self.record.address_postal_code,
            ),
        )

    def add_fuzzy_fd_postcode(self, preprocess: bool | None = None) -> None:
        """Family, birth date and postcode; the given name is left out."""
        self._add(
            "FuzzyFDPostcode",
            SearchQuery(
                fuzzy_match=True,
                family=self._family(preprocess),
                birthdate=self._dob(),
                address_postalcode=self.record.address_postal_code,
            ),
        )

    def try_add_fuzzy_alt_dob(self, preprocess: bool | None = None) -> bool:
        """
        Add a fuzzy query with day and month of the birth date swapped.

        Returns:
            True if the query was added, False if the day cannot be a month
        """
        alt_dob = alternate_birth_date(self.birth_date)
        if alt_dob is None:
            return False

        self._add(
            "FuzzyAltDob",
            self._all(
                preprocess,
                ("eq" + alt_dob.strftime(SEARCH_DATE_FORMAT),),
                self.record.address_postal_code,
                fuzzy_match=True,
            ),
        )
        return True

    def build(self) -> list[NamedQuery]:
        """Return the cascade in insertion order."""
        return [NamedQuery(name, query) for name, query in self._queries.items()]


def _with_postcode(query: SearchQuery, postcode: str | None) -> SearchQuery:
    return replace(query, address_postalcode=postcode)
