import pytest

from review_scraper.errors import ExtractionError
from review_scraper.extraction import (
    StrategyResult,
    embedded_json_strategy,
    extract_blocks,
    find_embedded_reviews,
    make_record,
    normalize_rating,
    record_from_json,
    run_strategies,
    split_blocks,
)

PAGE = "https://www.capterra.com/p/186596/notion/reviews/?page=1"


def test_find_embedded_reviews_in_script_state():
    html = (
        '<html><script>window.__STATE__ = {"reviews":['
        '{"reviewId":"r-1","title":"Solid","generalComments":"Great tool"},'
        '{"reviewId":"r-2","title":"Meh","generalComments":"Fine for notes"}'
        ']};</script></html>'
    )
    found = find_embedded_reviews(html)
    assert [o["reviewId"] for o in found] == ["r-1", "r-2"]


def test_find_embedded_reviews_unescapes_string_encoded_json():
    html = '<script>var s = "{\\"reviewId\\":\\"r-9\\",\\"generalComments\\":\\"Great tool\\"}";</script>'
    found = find_embedded_reviews(html)
    assert found == [{"reviewId": "r-9", "generalComments": "Great tool"}]


def test_find_embedded_reviews_skips_objects_without_content():
    html = '<script>x = {"reviewId": 7, "helpful": 3}; y = {"reviewId": 8, "body": "Works well"};</script>'
    found = find_embedded_reviews(html)
    assert found == [{"reviewId": 8, "body": "Works well"}]


def test_find_embedded_reviews_recovers_every_object_on_one_line():
    html = (
        '<script>window.__DATA__={"items":['
        '{"id":1,"title":"First","kind":"review"},'
        '{"id":2,"title":"Second","kind":"review"},'
        '{"id":3,"title":"Third","kind":"review"}]};</script>'
    )
    found = find_embedded_reviews(html)
    assert [o["title"] for o in found] == ["First", "Second", "Third"]


def test_find_embedded_reviews_ignores_braces_inside_strings():
    html = '<script>s = {"title":"smile :}","reviewId":"r1","body":"Works well"};</script>'
    found = find_embedded_reviews(html)
    assert found == [{"title": "smile :}", "reviewId": "r1", "body": "Works well"}]


def test_find_embedded_reviews_skips_nested_child_objects():
    html = '<script>s = {"user":{"name":"Ana"},"reviewId":"r2","body":"Solid"};</script>'
    found = find_embedded_reviews(html)
    assert found == [{"user": {"name": "Ana"}, "reviewId": "r2", "body": "Solid"}]


def test_record_from_json_maps_capterra_fields():
    obj = {
        "reviewId": "r-1",
        "title": "Solid",
        "generalComments": "Great tool",
        "prosText": "Fast",
        "consText": "Pricey",
        "writtenOn": "2024-06-01",
        "overallRating": 4,
        "reviewer": {"fullName": "Ann B.", "jobTitle": "PM", "industry": "Software"},
    }
    record = record_from_json(obj, "capterra", PAGE)
    assert record["title"] == "Solid"
    assert record["description"] == "Great tool Pros: Fast Cons: Pricey"
    assert record["date"] == "2024-06-01"
    assert record["rating"] == 4.0
    assert record["reviewer"] == "Ann B."
    assert record["extra"]["review_id"] == "r-1"
    assert record["extra"]["job_title"] == "PM"
    assert record["extra"]["industry"] == "Software"
    assert "company_size" not in record["extra"]


def test_record_from_json_rescales_ten_point_ratings():
    record = record_from_json({"id": 5, "title": "Good", "rating": 8}, "trustradius", PAGE, rating_scale=10)
    assert record["rating"] == 4.0


def test_record_from_json_rejects_non_objects():
    with pytest.raises(ExtractionError):
        record_from_json(["not", "a", "dict"], "g2", PAGE)


def test_embedded_json_strategy_marks_usable():
    html = '<script>{"reviewId":"a","content":"Nice editor","datePublished":"May 2, 2024"}</script>'
    result = embedded_json_strategy("g2")(html, PAGE)
    assert result.usable
    assert result.records[0]["date"] == "2024-05-02"


@pytest.mark.parametrize("raw,scale,expected", [
    (8, 10, 4.0),
    ("9/10", 10, 4.5),
    ("4.5 out of 5", 5, 4.5),
    (None, 5, None),
    ("n/a", 5, None),
    (12, 5, None),
    (8, 0, None),
])
def test_normalize_rating(raw, scale, expected):
    assert normalize_rating(raw, scale) == expected


def test_make_record_drops_empty_shells_and_cleans_text():
    assert make_record("g2", PAGE, title="  ", description="\n ", date="unknown") is None
    record = make_record("g2", PAGE, title="  Clean\n  me ", description="a  b", extra={"pros": ""})
    assert record["title"] == "Clean me"
    assert record["description"] == "a b"
    assert record["extra"] == {}


def test_run_strategies_stops_at_first_usable_and_survives_failures():
    def empty(html, url):
        return StrategyResult([], False)

    def broken(html, url):
        raise ValueError("boom")

    def good(html, url):
        return StrategyResult([{"title": "ok", "extra": {}}], True)

    def never(html, url):
        raise AssertionError("should not run")

    records = run_strategies([("empty", empty), ("broken", broken), ("good", good), ("never", never)], "", PAGE)
    assert records == [{"title": "ok", "extra": {"strategy": "good"}}]


def test_split_blocks_drops_text_before_first_boundary():
    html = "<div>nav</div><article>A</article><article>B</article>"
    assert split_blocks(html) == ["<article>A</article>", "<article>B</article>"]
    assert split_blocks("<div>no articles here</div>") == []


def test_extract_blocks_reads_fields():
    html = (
        "<header>site</header>"
        '<article class="review"><h3>Reliable</h3><span class="reviewer-name">Sam P.</span>'
        '<time datetime="2024-02-10">Feb 10</time><div aria-label="4 out of 5"></div>'
        "<p>Does the job.</p><p>Support is quick.</p></article>"
        "<article><div>   </div></article>"
    )
    records = extract_blocks(html, PAGE, "capterra")
    assert len(records) == 1
    r = records[0]
    assert r["title"] == "Reliable"
    assert r["reviewer"] == "Sam P."
    assert r["date"] == "2024-02-10"
    assert r["rating"] == 4.0
    assert r["description"] == "Does the job. Support is quick."
