import re

import pytest
from bson import ObjectId

from mflix_api.core.errors import APIError, InvalidObjectIdError
from mflix_api.models.query import SearchOperator, SortOrder
from mflix_api.utils.params import (
    convert_id_filter,
    genre_pattern,
    normalize_comment_report_params,
    normalize_director_report_params,
    normalize_list_params,
    normalize_search_params,
    normalize_vector_search_params,
    parse_float,
    parse_int,
    parse_limit,
    parse_object_id,
    parse_skip,
    parse_sort_order,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, 20),
        ("abc", 20),
        ("5", 5),
        ("0", 1),
        ("-3", 1),
        ("1000", 100),
        ("+7", 7),
        ("1_0", 20),
        (" 7 ", 20),
        ("\u0661\u0662", 20),
        ("\uff15", 20),
    ],
)
def test_parse_limit_defaults_and_clamps(raw, expected):
    assert parse_limit(raw, 20, 100) == expected


@pytest.mark.parametrize("raw", ["1_000", " 42", "42\n", "٤٢", "4.0", "0x10", "", "+"])
def test_parse_int_accepts_only_ascii_digits(raw):
    assert parse_int(raw) is None


def test_parse_int_signs():
    assert parse_int("-12") == -12
    assert parse_int("+12") == 12
    assert parse_int("007") == 7


def test_list_year_must_be_plain_digits():
    assert normalize_list_params(year="1_999").year is None
    assert normalize_list_params(year="1999").year == 1999


def test_parse_skip_never_negative():
    assert parse_skip(None) == 0
    assert parse_skip("x") == 0
    assert parse_skip("-10") == 0
    assert parse_skip("15") == 15


def test_parse_float_rejects_non_finite():
    assert parse_float("7.5") == 7.5
    assert parse_float("nan") is None
    assert parse_float("inf") is None
    assert parse_float("high") is None


def test_sort_order_falls_back_to_ascending():
    assert parse_sort_order("desc") is SortOrder.DESC
    assert parse_sort_order("DESC") is SortOrder.ASC
    assert parse_sort_order(None) is SortOrder.ASC


def test_list_params_drop_invalid_numbers():
    params = normalize_list_params(year="nineteen", min_rating="bad", limit="500", skip="-1")
    assert params.year is None
    assert params.min_rating is None
    assert params.limit == 100
    assert params.skip == 0
    assert params.sort_by == "title"


def test_list_params_keep_sort_field_unvalidated():
    params = normalize_list_params(sort_by="imdb.rating", sort_order="desc")
    assert params.sort_by == "imdb.rating"
    assert params.sort_order is SortOrder.DESC


def test_search_params_default_operator_is_must():
    params = normalize_search_params(plot="space")
    assert params.search_operator is SearchOperator.MUST
    assert params.limit == 20


def test_search_params_reject_unknown_operator():
    with pytest.raises(APIError) as exc_info:
        normalize_search_params(plot="space", search_operator="maybe")
    assert exc_info.value.code == "INVALID_SEARCH_OPERATOR"
    assert exc_info.value.status_code == 400


def test_vector_params_require_query():
    with pytest.raises(APIError) as exc_info:
        normalize_vector_search_params("   ")
    assert exc_info.value.code == "MISSING_QUERY_PARAMETER"


def test_vector_params_limit_bounds():
    assert normalize_vector_search_params("robots").limit == 10
    assert normalize_vector_search_params("robots", "99").limit == 50


def test_report_params():
    movie_id = ObjectId()
    comments = normalize_comment_report_params("80", str(movie_id))
    assert comments.limit == 50
    assert comments.movie_id == movie_id
    assert normalize_comment_report_params().movie_id is None
    assert normalize_director_report_params("7").limit == 7


def test_parse_object_id():
    movie_id = ObjectId()
    assert parse_object_id(str(movie_id)) == movie_id
    with pytest.raises(InvalidObjectIdError) as exc_info:
        parse_object_id("not-an-id")
    assert exc_info.value.code == "INVALID_OBJECT_ID"
    assert exc_info.value.message == "Invalid movie ID format"


def test_convert_id_filter_handles_string_in_and_nin():
    first, second = ObjectId(), ObjectId()
    assert convert_id_filter({"_id": str(first)}) == {"_id": first}
    assert convert_id_filter({"_id": {"$in": [str(first), str(second)]}}) == {"_id": {"$in": [first, second]}}
    assert convert_id_filter({"_id": {"$nin": [str(first)]}, "year": 1999}) == {
        "_id": {"$nin": [first]},
        "year": 1999,
    }


def test_convert_id_filter_leaves_other_filters_alone():
    original = {"year": {"$lt": 1950}}
    assert convert_id_filter(original) == original


def test_convert_id_filter_is_atomic():
    good = str(ObjectId())
    with pytest.raises(InvalidObjectIdError) as exc_info:
        convert_id_filter({"_id": {"$in": [good, "bogus"]}})
    assert exc_info.value.message == "Invalid ObjectId: bogus"
    assert exc_info.value.details == "bogus"


def test_genre_pattern_escapes_metacharacters():
    assert re.search(genre_pattern("Sci-Fi (Classic)"), "Sci-Fi (Classic)")
    assert not re.search(genre_pattern("Drama|Comedy"), "Comedy")
    assert not re.search(genre_pattern(".*"), "Western")
