import pytest
from fastapi import FastAPI
from httpx import AsyncClient
from sqlalchemy import select

from inkwell.models.post import Post


def is_html(response) -> bool:
    return response.headers["content-type"].startswith("text/html")


@pytest.mark.asyncio
async def test_homepage_lists_published_posts(client: AsyncClient, make_post):
    await make_post("Shown On Home", "Public words.")
    await make_post("Kept Private", "Secret words.", published=False)

    response = await client.get("/")
    assert response.status_code == 200
    assert "Shown On Home" in response.text
    assert "Kept Private" not in response.text


@pytest.mark.asyncio
async def test_read_post_page(client: AsyncClient, make_post):
    await make_post("Rendered", "Some **bold** text.")

    response = await client.get("/post/rendered")
    assert response.status_code == 200
    assert "<strong>bold</strong>" in response.text


@pytest.mark.asyncio
async def test_missing_post_renders_error_page(client: AsyncClient):
    response = await client.get("/post/nowhere")
    assert response.status_code == 404
    assert is_html(response)
    assert "Not found" in response.text


@pytest.mark.asyncio
async def test_unknown_page_path_renders_error_page(client: AsyncClient):
    response = await client.get("/post/a/b/c")
    assert response.status_code == 404
    assert is_html(response)
    assert "Not Found" in response.text


@pytest.mark.asyncio
async def test_control_panel_requires_login(client: AsyncClient):
    response = await client.get("/user")
    assert response.status_code == 401
    assert is_html(response)


@pytest.mark.asyncio
async def test_new_post_form_requires_login(client: AsyncClient):
    response = await client.get("/post/new")
    assert response.status_code == 401
    assert is_html(response)


@pytest.mark.asyncio
async def test_login_sets_cookie_and_redirects(client: AsyncClient, author):
    response = await client.post("/login", data={"username": "author", "password": "password"})
    assert response.status_code == 303
    assert response.headers["location"] == "/user"
    assert "access_token" in response.headers["set-cookie"]


@pytest.mark.asyncio
async def test_login_with_bad_credentials(client: AsyncClient, author):
    response = await client.post("/login", data={"username": "author", "password": "wrong"})
    assert response.status_code == 401
    assert "Invalid credentials" in response.text


@pytest.mark.asyncio
async def test_logout_clears_cookie(client: AsyncClient):
    response = await client.get("/logout")
    assert response.status_code == 303
    assert response.headers["location"] == "/login"


@pytest.mark.asyncio
async def test_create_and_publish_through_pages(app: FastAPI, client: AsyncClient, author_cookie):
    response = await client.post(
        "/post/new",
        headers=author_cookie,
        data={"title": "From The Form", "markdown": "Typed in a browser."}
    )
    assert response.status_code == 303
    assert response.headers["location"] == "/user"

    response = await client.get("/user", headers=author_cookie)
    assert response.status_code == 200
    assert "From The Form" in response.text
    assert "Draft" in response.text

    response = await client.post("/post/from-the-form/publish", headers=author_cookie)
    assert response.status_code == 303
    assert response.headers["location"] == "/post/from-the-form"

    async with app.state.session_factory() as session:
        post = (await session.execute(select(Post).where(Post.slug == "from-the-form"))).scalar_one()
    assert post.is_published


@pytest.mark.asyncio
async def test_edit_and_update_through_pages(client: AsyncClient, make_post, author_cookie):
    await make_post("Editable", "Before.")

    response = await client.get("/post/editable/edit", headers=author_cookie)
    assert response.status_code == 200
    assert "Before." in response.text

    response = await client.post(
        "/post/editable/edit",
        headers=author_cookie,
        data={"title": "Edited", "markdown": "After."}
    )
    assert response.status_code == 303
    assert response.headers["location"] == "/user"

    response = await client.get("/post/editable")
    assert "Edited" in response.text
    assert "After." in response.text


@pytest.mark.asyncio
async def test_other_user_cannot_edit_through_pages(client: AsyncClient, make_post, other_cookie):
    await make_post("Protected", "Mine.")

    response = await client.get("/post/protected/edit", headers=other_cookie)
    assert response.status_code == 401
    assert is_html(response)

    response = await client.post(
        "/post/protected/edit",
        headers=other_cookie,
        data={"title": "Stolen", "markdown": "Yours."}
    )
    assert response.status_code == 401
    assert is_html(response)


@pytest.mark.asyncio
async def test_unpublish_and_delete_through_pages(client: AsyncClient, make_post, author_cookie):
    await make_post("Short Lived", "Gone soon.")

    response = await client.post("/post/short-lived/unpublish", headers=author_cookie)
    assert response.status_code == 303
    assert response.headers["location"] == "/user"
    assert (await client.get("/post/short-lived")).status_code == 404

    response = await client.post("/post/short-lived/delete", headers=author_cookie)
    assert response.status_code == 303
    assert (await client.get("/post/short-lived", headers=author_cookie)).status_code == 404


@pytest.mark.asyncio
async def test_invalid_form_renders_error_page(client: AsyncClient, author_cookie):
    response = await client.post("/post/new", headers=author_cookie, data={"title": "", "markdown": ""})
    assert response.status_code == 400
    assert is_html(response)
