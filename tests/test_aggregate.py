from image_search.aggregate import summarize
from image_search.models import Failure, FailureReason, Success


class _ListLog:
    def __init__(self):
        self.records = []

    def append(self, data):
        self.records.append(data)


def _success(image_id):
    return Success(id=image_id, small_url=f"/images/{image_id}_small.jpg", thumb_url=f"/images/{image_id}_thumb.jpg")


def test_counts_and_visible_list_keep_completion_order():
    outcomes = [
        _success("c"),
        Failure(id="x", reason=FailureReason.NETWORK, message="ReadTimeout: timed out"),
        _success("a"),
        Failure(id="y", reason=FailureReason.DECODE, message="cannot identify image file"),
    ]

    result = summarize("cars", outcomes)

    assert result.query == "cars"
    assert result.total_processed == 2
    assert result.total_failed == 2
    assert [item.id for item in result.visible_results] == ["c", "a"]


def test_failures_go_to_failure_log_only():
    log = _ListLog()
    failure = Failure(
        id="x",
        reason=FailureReason.STORAGE,
        message="OSError: Disk full",
        source_url="https://images.test/x",
    )

    result = summarize("cars", [failure], failed_logger=log)

    assert result.visible_results == ()
    [record] = log.records
    assert record["id"] == "x"
    assert record["reason"] == "STORAGE"
    assert record["detail"] == "OSError: Disk full"
    assert record["url"] == "https://images.test/x"
    assert "Disk full" not in str(result.to_dict())


def test_to_dict_response_shape():
    result = summarize("cars", [_success("a")])

    assert result.to_dict() == {
        "searchQuery": "cars",
        "totalProcessed": 1,
        "totalFailed": 0,
        "processedImages": [
            {
                "imageId": "a",
                "altDescription": None,
                "description": None,
                "smallImageUrl": "/images/a_small.jpg",
                "thumbnailUrl": "/images/a_thumb.jpg",
            }
        ],
    }


def test_empty_outcomes():
    result = summarize("nothing", [])
    assert (result.total_processed, result.total_failed, result.visible_results) == (0, 0, ())
