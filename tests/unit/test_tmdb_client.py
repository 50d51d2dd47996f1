import unittest
import httpx
from trailerfeed.schemas import FeedFilters, Genre
from trailerfeed.services.tmdb_client import (
    TMDBClient,
    ProviderNetworkError,
    ProviderRequestError,
    ProviderUnauthorizedError,
    image_url,
    normalize_movie,
    select_trailer_key,
)


def make_client(handler, language="ru-RU", api_key="test-key"):
    transport = httpx.MockTransport(handler)
    http = httpx.AsyncClient(transport=transport)
    return TMDBClient(api_key=api_key, base_url="https://tmdb.test/3", language=language, http_client=http, backoff_base_delay=0)


class Recorder:
    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.replace("/3", "", 1)
        route = self.routes.get(path)
        if route is None:
            return httpx.Response(404, json={"status_message": "not found"})
        if callable(route):
            return route(request)
        return httpx.Response(200, json=route)


class TestNormalization(unittest.TestCase):
    def test_normalize_movie(self):
        movie = normalize_movie({"id": 5, "title": "Dune", "vote_average": 8.1, "poster_path": "/p.jpg"})
        self.assertEqual(movie.id, 5)
        self.assertEqual(movie.overview, "")
        self.assertIsNone(movie.video_key)
        self.assertIsNone(movie.genres)
        self.assertFalse(movie.liked)
        self.assertIsNone(normalize_movie({"title": "no id"}))

    def test_title_falls_back_to_original(self):
        movie = normalize_movie({"id": 1, "original_title": "Amélie"})
        self.assertEqual(movie.title, "Amélie")

    def test_select_trailer_prefers_locale(self):
        videos = [
            {"key": "teaser", "site": "YouTube", "type": "Teaser", "iso_639_1": "ru"},
            {"key": "en-trailer", "site": "YouTube", "type": "Trailer", "iso_639_1": "en"},
            {"key": "vimeo", "site": "Vimeo", "type": "Trailer", "iso_639_1": "ru"},
            {"key": "ru-trailer", "site": "YouTube", "type": "Trailer", "iso_639_1": "ru"},
        ]
        self.assertEqual(select_trailer_key(videos, "ru"), "ru-trailer")
        self.assertEqual(select_trailer_key(videos, "de"), "en-trailer")
        self.assertIsNone(select_trailer_key(videos[:1], "ru"))
        self.assertIsNone(select_trailer_key([], "ru"))

    def test_image_url(self):
        self.assertEqual(image_url("/a.jpg"), "https://image.tmdb.org/t/p/w500/a.jpg")
        self.assertEqual(image_url("/a.jpg", "original"), "https://image.tmdb.org/t/p/original/a.jpg")
        self.assertIsNone(image_url(None))

    def test_movies_carry_image_urls(self):
        movie = normalize_movie({"id": 5, "title": "Dune", "poster_path": "/p.jpg", "backdrop_path": "/b.jpg"})
        self.assertEqual(movie.poster_url, "https://image.tmdb.org/t/p/w500/p.jpg")
        self.assertEqual(movie.backdrop_url, "https://image.tmdb.org/t/p/w1280/b.jpg")
        custom = normalize_movie({"id": 5, "poster_path": "/p.jpg"}, "https://cdn.test/img/")
        self.assertEqual(custom.poster_url, "https://cdn.test/img/w500/p.jpg")
        self.assertIsNone(custom.backdrop_url)

    def test_malformed_records_are_dropped(self):
        self.assertIsNone(normalize_movie({"id": 1, "title": "Bad rating", "vote_average": "N/A"}))
        self.assertIsNone(normalize_movie({"id": "abc", "title": "Bad id"}))
        movie = normalize_movie({"id": 2, "title": "Ok", "genres": [{"id": "drama"}, {"id": 18, "name": "Drama"}, "junk"]})
        self.assertEqual(movie.genres, [Genre(id=18, name="Drama")])


class TestTMDBClient(unittest.IsolatedAsyncioTestCase):
    async def test_fetch_trending(self):
        rec = Recorder({"/trending/movie/day": {"results": [{"id": 1, "title": "A"}, {"id": 2, "title": "B"}, {"title": "bad"}]}})
        client = make_client(rec)
        movies = await client.fetch_trending()
        self.assertEqual([m.id for m in movies], [1, 2])
        params = rec.requests[0].url.params
        self.assertEqual(params["api_key"], "test-key")
        self.assertEqual(params["language"], "ru-RU")

    async def test_unauthorized(self):
        client = make_client(lambda r: httpx.Response(401, json={"status_message": "Invalid API key"}))
        with self.assertRaises(ProviderUnauthorizedError):
            await client.fetch_trending()

    async def test_missing_api_key_is_unauthorized(self):
        client = make_client(lambda r: httpx.Response(200, json={"results": []}), api_key="")
        with self.assertRaises(ProviderUnauthorizedError):
            await client.fetch_trending()

    async def test_request_failed_carries_status_and_message(self):
        client = make_client(lambda r: httpx.Response(500, json={"status_message": "Internal error"}))
        with self.assertRaises(ProviderRequestError) as ctx:
            await client.fetch_trending()
        self.assertEqual(ctx.exception.status, 500)
        self.assertEqual(ctx.exception.message, "Internal error")
        self.assertEqual(ctx.exception.kind, "request_failed")

    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)
        client = make_client(handler)
        with self.assertRaises(ProviderNetworkError):
            await client.fetch_trending()

    async def test_timeout_is_network_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)
        client = make_client(handler)
        with self.assertRaises(ProviderNetworkError):
            await client.fetch_trending()

    async def test_rate_limit_is_retried(self):
        calls = {"n": 0}
        def handler(request):
            calls["n"] += 1
            if calls["n"] < 3:
                return httpx.Response(429, headers={"Retry-After": "0"})
            return httpx.Response(200, json={"results": [{"id": 9, "title": "Late"}]})
        client = make_client(handler)
        movies = await client.fetch_trending()
        self.assertEqual([m.id for m in movies], [9])
        self.assertEqual(calls["n"], 3)

    async def test_rate_limit_exhausted(self):
        client = make_client(lambda r: httpx.Response(429))
        client.max_retries = 2
        with self.assertRaises(ProviderRequestError) as ctx:
            await client.fetch_trending()
        self.assertEqual(ctx.exception.status, 429)

    async def test_trailer_lookup(self):
        rec = Recorder({"/movie/10/videos": {"results": [
            {"key": "en", "site": "YouTube", "type": "Trailer", "iso_639_1": "en"},
            {"key": "ru", "site": "YouTube", "type": "Trailer", "iso_639_1": "ru"},
        ]}})
        client = make_client(rec)
        self.assertEqual(await client.fetch_trailer_key(10), "ru")
        self.assertEqual(rec.requests[0].url.params["include_video_language"], "ru,en,null")

    async def test_soft_lookups_never_raise(self):
        client = make_client(lambda r: httpx.Response(500, json={"status_message": "boom"}))
        self.assertIsNone(await client.fetch_trailer_key(1))
        self.assertEqual(await client.fetch_recommendations(1), [])
        self.assertEqual(await client.fetch_genres(1), [])
        self.assertEqual(await client.fetch_genre_catalog(), [])

    async def test_soft_lookups_absorb_network_errors(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)
        client = make_client(handler)
        self.assertIsNone(await client.fetch_trailer_key(1))
        self.assertEqual(await client.fetch_recommendations(1), [])

    async def test_fetch_genres_and_details(self):
        rec = Recorder({"/movie/3": {"id": 3, "title": "Alien", "genres": [{"id": 27, "name": "Horror"}, {"id": 878, "name": "Science Fiction"}]}})
        client = make_client(rec)
        genres = await client.fetch_genres(3)
        self.assertEqual([g.id for g in genres], [27, 878])
        details = await client.fetch_movie_details(3)
        self.assertEqual(details.genres[1].name, "Science Fiction")

    async def test_details_without_genres_resolve_to_empty(self):
        client = make_client(Recorder({"/movie/4": {"id": 4, "title": "Plain"}}))
        details = await client.fetch_movie_details(4)
        self.assertEqual(details.genres, [])

    async def test_genre_catalog_is_memoized(self):
        rec = Recorder({"/genre/movie/list": {"genres": [{"id": 28, "name": "Action"}]}})
        client = make_client(rec)
        first = await client.fetch_genre_catalog()
        second = await client.fetch_genre_catalog()
        self.assertEqual(first, second)
        self.assertEqual(len(rec.requests), 1)

    async def test_discover_doubles_min_rating(self):
        rec = Recorder({"/discover/movie": {"results": [{"id": 1, "title": "Good"}]}})
        client = make_client(rec)
        movies = await client.search_movies(FeedFilters(min_rating=4, genre_ids=[28, 12]))
        self.assertEqual([m.id for m in movies], [1])
        params = rec.requests[0].url.params
        self.assertEqual(float(params["vote_average.gte"]), 8.0)
        self.assertEqual(params["with_genres"], "28,12")
        self.assertNotIn("query", params)

    async def test_text_search_filters_locally(self):
        rec = Recorder({"/search/movie": {"results": [
            {"id": 1, "title": "Matrix", "genre_ids": [28, 878], "vote_average": 8.7},
            {"id": 2, "title": "Matrix Resurrections", "genre_ids": [28, 878], "vote_average": 6.5},
            {"id": 3, "title": "Matrix Doc", "genre_ids": [99], "vote_average": 9.0},
        ]}})
        client = make_client(rec)
        movies = await client.search_movies(FeedFilters(query=" matrix ", genre_ids=[878], min_rating=4))
        self.assertEqual([m.id for m in movies], [1])
        self.assertEqual(rec.requests[0].url.params["query"], "matrix")

    async def test_soft_lookups_absorb_malformed_payloads(self):
        rec = Recorder({
            "/movie/1/recommendations": {"results": [
                {"id": 1, "title": "Broken", "vote_average": "N/A"},
                {"id": 2, "title": "Fine", "vote_average": 7.2},
            ]},
            "/movie/3/recommendations": {"results": "nope"},
            "/movie/2": {"id": 2, "title": "Fine", "genres": [{"id": "drama"}]},
            "/movie/5": {"id": 5, "title": "Unrated", "vote_average": "N/A"},
            "/movie/2/videos": ["not", "an", "object"],
            "/genre/movie/list": {"genres": "oops"},
        })
        client = make_client(rec)
        self.assertEqual([m.id for m in await client.fetch_recommendations(1)], [2])
        self.assertEqual(await client.fetch_recommendations(3), [])
        self.assertEqual(await client.fetch_genres(2), [])
        self.assertEqual(await client.fetch_genres(5), [])
        self.assertIsNone(await client.fetch_trailer_key(2))
        self.assertEqual(await client.fetch_genre_catalog(), [])

    async def test_malformed_details_raise_provider_error(self):
        client = make_client(Recorder({"/movie/5": {"id": 5, "vote_average": "N/A"}}))
        with self.assertRaises(ProviderRequestError):
            await client.fetch_movie_details(5)

    async def test_text_search_skips_non_dict_entries(self):
        rec = Recorder({"/search/movie": {"results": [
            "junk",
            None,
            {"id": 1, "title": "Kept", "genre_ids": [28], "vote_average": 7.0},
            {"id": 2, "title": "Odd rating", "genre_ids": [28], "vote_average": "N/A"},
            {"id": 3, "title": "Odd genres", "genre_ids": "28", "vote_average": 9.0},
        ]}})
        client = make_client(rec)
        movies = await client.search_movies(FeedFilters(query="kept", genre_ids=[28], min_rating=3))
        self.assertEqual([m.id for m in movies], [1])

    async def test_client_image_base_url(self):
        rec = Recorder({"/trending/movie/day": {"results": [{"id": 1, "title": "A", "poster_path": "/a.jpg"}]}})
        client = TMDBClient(
            api_key="k",
            base_url="https://tmdb.test/3",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(rec)),
            image_base_url="https://img.test/t/p",
        )
        movies = await client.fetch_trending()
        self.assertEqual(movies[0].poster_url, "https://img.test/t/p/w500/a.jpg")

    async def test_search_errors_propagate(self):
        client = make_client(lambda r: httpx.Response(503, json={"status_message": "down"}))
        with self.assertRaises(ProviderRequestError):
            await client.search_movies(FeedFilters(query="x"))

if __name__ == "__main__":
    unittest.main()
