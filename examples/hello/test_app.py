"""Tests for the hello example."""


class TestHelloApp:
    """Verify the hello example's views render through the engine."""

    def test_index(self, example) -> None:
        html = example.page("index.mustache", title="Home", items=["alpha", "beta"])
        assert "<title>Home</title>" in html
        assert "<h1>Home</h1>" in html
        assert "<li>alpha</li>" in html
        assert "<li>beta</li>" in html
        assert html.rstrip().endswith("</html>")

    def test_partials_indexed_both_ways(self, example) -> None:
        index = example.engine.get_index(example.VIEWS)
        assert {"head", "foot", "partials/head", "partials/foot", "index"} <= set(index)

    def test_escapes_context(self, example) -> None:
        html = example.page("index", title="<script>", items=[])
        assert "<h1>&lt;script&gt;</h1>" in html

    def test_missing_view_is_500(self, example) -> None:
        status, body = example.page_or_error("missing.mustache")
        assert status == 500
        assert "missing" in body

    def test_ok_view_is_200(self, example) -> None:
        status, body = example.page_or_error("index", title="T", items=[])
        assert status == 200
        assert "<h1>T</h1>" in body
