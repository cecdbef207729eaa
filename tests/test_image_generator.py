import base64

from conftest import image_response, text_only_response
from hanyun.agents.image_generator import ImageGeneratorAgent


async def test_returns_first_inline_image_as_data_uri(make_client, png_bytes):
    client = make_client(images=[image_response(png_bytes)])

    url = await ImageGeneratorAgent(client).generate_image("Two students bargaining over apples")

    assert url == "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")
    prompt = client.image_models.calls[0]
    assert "photorealistic" in prompt
    assert "Two students bargaining over apples" in prompt


async def test_base64_text_payload_is_kept(make_client):
    client = make_client(images=[image_response("aGVsbG8=", mime_type="image/jpeg", with_text=False)])

    url = await ImageGeneratorAgent(client).generate_image("scene")

    assert url == "data:image/jpeg;base64,aGVsbG8="


async def test_no_image_part_returns_none(make_client):
    client = make_client(images=[text_only_response()])

    assert await ImageGeneratorAgent(client).generate_image("scene") is None


async def test_error_returns_none(make_client):
    client = make_client(images=[RuntimeError("quota exceeded")])

    assert await ImageGeneratorAgent(client).generate_image("scene") is None
