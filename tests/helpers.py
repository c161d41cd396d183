import io

from PIL import Image


def make_jpeg(w=200, h=150, color=(100, 150, 200)) -> bytes:
    img = Image.new("RGB", (w, h), color=color)
    b = io.BytesIO()
    img.save(b, format="JPEG", quality=90)
    return b.getvalue()


class FakeProvider:
    """Returns scripted outputs; an Exception in the script is raised instead."""

    model = "test/model"

    def __init__(self, outputs):
        self.outputs = list(outputs)
        self.calls = []

    def complete(self, messages, temperature, max_tokens, request_id=None, attempt=1):
        self.calls.append({"messages": messages, "temperature": temperature, "max_tokens": max_tokens, "attempt": attempt})
        out = self.outputs.pop(0)
        if isinstance(out, Exception):
            raise out
        return out


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, text=None):
        self.status_code = status_code
        self._json = json_data
        if text is None:
            import json

            text = json.dumps(json_data, ensure_ascii=False) if json_data is not None else ""
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._json is None:
            raise ValueError("no json")
        return self._json


class FakeSession:
    """Records post() calls; each scripted item is a FakeResponse or an Exception."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r
