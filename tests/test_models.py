from app.models import CatalogPage, DiscoveryItem, MediaInfo, SubjectMatch, StudioDetails


def test_display_title_falls_back_through_title_fields():
    assert DiscoveryItem(id=1, title="Heat", name="ignored").display_title == "Heat"
    assert DiscoveryItem(id=2, name="Lost").display_title == "Lost"
    assert DiscoveryItem(id=3, originalTitle="Léon").display_title == "Léon"
    assert DiscoveryItem(id=4, originalName="Dark").display_title == "Dark"
    assert DiscoveryItem(id=5).display_title == "Unknown"


def test_item_parses_camel_case_payload():
    item = DiscoveryItem.model_validate(
        {
            "id": 603,
            "mediaType": "movie",
            "title": "The Matrix",
            "posterPath": "/poster.jpg",
            "releaseDate": "1999-03-31",
            "voteCount": 25000,
            "popularity": 88.5,
            "genreIds": [28, 878],
            "mediaInfo": {"status": 5, "requests": [{"id": 1, "status": 2}]},
        }
    )

    assert item.key == ("movie", 603)
    assert item.release_year == "1999"
    assert item.is_complete is True
    assert item.is_available is True
    assert item.media_info is not None
    assert item.media_info.requests[0].id == 1


def test_media_info_status_flags():
    assert MediaInfo(status=5).is_available is True
    assert MediaInfo(status=5).is_requested is False
    for status in (2, 3, 4):
        info = MediaInfo(status=status)
        assert info.is_requested is True
        assert info.is_available is False
    assert MediaInfo(status=1).is_requested is False
    assert MediaInfo(status=4).status_text == "Partially Available"
    assert MediaInfo(status=42).status_text == "Unknown"


def test_completeness_requires_poster_and_date():
    assert DiscoveryItem(id=1, posterPath="/p.jpg", firstAirDate="2020-01-01").is_complete
    assert not DiscoveryItem(id=2, posterPath="/p.jpg").is_complete
    assert not DiscoveryItem(id=3, releaseDate="2020-01-01").is_complete


def test_catalog_page_defaults_to_single_page():
    page = CatalogPage.model_validate({"items": []})

    assert page.page == 1
    assert page.total_pages == 1
    assert page.total_results == 0


def test_subject_match_empty():
    assert SubjectMatch().is_empty is True
    assert SubjectMatch(network_id=71).is_empty is False
    assert SubjectMatch(studio=StudioDetails(id=900, name="CW Studios")).is_empty is False
