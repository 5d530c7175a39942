from pymongo import ASCENDING, DESCENDING

from mflix_api.services.filters import build_movie_filter, build_sort
from mflix_api.utils.params import normalize_list_params


def test_empty_params_build_empty_filter():
    assert build_movie_filter(normalize_list_params()) == {}


def test_each_parameter_adds_one_clause():
    params = normalize_list_params(q="space", genre="Action", year="1999", min_rating="7.5")
    assert build_movie_filter(params) == {
        "$text": {"$search": "space"},
        "genres": {"$regex": "Action", "$options": "i"},
        "year": 1999,
        "imdb.rating": {"$gte": 7.5},
    }


def test_rating_range_combines_bounds():
    params = normalize_list_params(min_rating="6", max_rating="8.5")
    assert build_movie_filter(params)["imdb.rating"] == {"$gte": 6.0, "$lte": 8.5}


def test_invalid_year_is_ignored():
    assert "year" not in build_movie_filter(normalize_list_params(year="199x"))


def test_sort_direction():
    assert build_sort(normalize_list_params()) == [("title", ASCENDING)]
    assert build_sort(normalize_list_params(sort_by="year", sort_order="desc")) == [("year", DESCENDING)]
