import pytest

from cleaning_cards.errors import HttpError, InvalidModelJson, InvalidRequest, MissingApiKey
from cleaning_cards.models import AnalysisRequest, CleaningCard, RoomPhoto
from cleaning_cards.services.analyzer import AnalyzerService
from tests.helpers import FakeProvider


def _service(provider, settings, sleeps=None):
    sleeps = [] if sleeps is None else sleeps
    return AnalyzerService(provider, settings, sleep=sleeps.append, quiet=True)


def test_initial_direct_parse(settings):
    provider = FakeProvider(['{"cards":[{"instruction":"テーブルの上の紙を片付ける"}]}'])
    result = _service(provider, settings).analyze_initial("QUJD", "ja-JP")
    assert result.instructions == ["テーブルの上の紙を片付ける"]
    assert len(provider.calls) == 1
    assert provider.calls[0]["temperature"] == 0.2
    assert provider.calls[0]["max_tokens"] == settings.max_tokens


def test_initial_extracts_json_from_prose_without_repair(settings):
    provider = FakeProvider(['Here you go:\n```json\n{"cards": []}\n```'])
    result = _service(provider, settings).analyze_initial("QUJD")
    assert result.cards == []
    assert len(provider.calls) == 1


def test_repair_call_recovers_malformed_output(settings):
    provider = FakeProvider([
        "Sure! Here is the JSON: {garbled",
        '{"cards": [{"instruction": "床の服をかごに入れる"}]}',
    ])
    result = _service(provider, settings).analyze_initial("QUJD", "ja-JP")
    assert result.instructions == ["床の服をかごに入れる"]
    repair = provider.calls[1]
    assert repair["temperature"] == 0
    assert "Sure! Here is the JSON: {garbled" in repair["messages"][1]["content"]


def test_repair_failure_raises_with_original_raw(settings):
    provider = FakeProvider(["Sure! Here is the JSON: {garbled", "still {garbled"])
    with pytest.raises(InvalidModelJson) as exc:
        _service(provider, settings).analyze_initial("QUJD")
    assert exc.value.raw == "Sure! Here is the JSON: {garbled"
    assert len(provider.calls) == 2


def test_generation_retries_before_parsing(settings):
    sleeps = []
    provider = FakeProvider([HttpError(500, "x"), '{"cards": [{"instruction": "a"}]}'])
    result = _service(provider, settings, sleeps).analyze_initial("QUJD")
    assert result.instructions == ["a"]
    assert sleeps == [0.8]


def test_missing_api_key_propagates(settings):
    provider = FakeProvider([MissingApiKey()])
    with pytest.raises(MissingApiKey):
        _service(provider, settings).analyze_initial("QUJD")


def test_followup_defaults_missing_fields(settings):
    provider = FakeProvider(['{"completed": [{"instruction": "床の服を拾う"}]}'])
    result = _service(provider, settings).analyze_followup(
        "BEFORE", "AFTER", [CleaningCard("床の服を拾う")], "ja-JP"
    )
    assert result.to_dict() == {
        "mode": "followup",
        "completed": [{"instruction": "床の服を拾う"}],
        "remaining": [],
        "newTasks": [],
        "feedback": "",
    }


def test_followup_repair_uses_followup_prompt(settings):
    provider = FakeProvider(["nope", '{"feedback": "すっきり"}'])
    result = _service(provider, settings).analyze_followup("B", "A", [])
    assert result.feedback == "すっきり"
    assert '"newTasks"' in provider.calls[1]["messages"][0]["content"]


def test_analyze_dispatches_on_mode(settings):
    photo = RoomPhoto(jpeg=b"after")
    provider = FakeProvider(['{"remaining": [{"instruction": "x"}], "feedback": "ok"}'])
    req = AnalysisRequest(
        image=photo,
        mode="followup",
        previous_image=RoomPhoto(jpeg=b"before"),
        previous_cards=[CleaningCard("x")],
    )
    result = _service(provider, settings).analyze(req)
    assert result.to_dict()["remaining"] == [{"instruction": "x"}]
    images = [p["image_url"]["url"] for p in provider.calls[0]["messages"][1]["content"] if p["type"] == "image_url"]
    assert images == [
        "data:image/jpeg;base64," + RoomPhoto(jpeg=b"before").to_base64(),
        "data:image/jpeg;base64," + photo.to_base64(),
    ]


def test_analyze_rejects_incomplete_followup_before_calling_model(settings):
    provider = FakeProvider([])
    req = AnalysisRequest(image=RoomPhoto(jpeg=b"x"), mode="followup", previous_cards=[])
    with pytest.raises(InvalidRequest):
        _service(provider, settings).analyze(req)
    assert provider.calls == []
