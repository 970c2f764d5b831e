"""
HTTP tests for the local web API, using an in-memory store and a fast
bcrypt cost.
"""

import unittest

from fastapi.testclient import TestClient

from medtextdb.accounts.passwords import BcryptHasher
from medtextdb.accounts.service import AccountService
from medtextdb.catalog.store import CatalogStore
from medtextdb.deps import get_accounts, get_store
from medtextdb.main import app
from medtextdb.storage import MemoryBackend, Store


BOOK_FORM = {
    "title": "Gray's Anatomy for Students",
    "author": "Richard L. Drake",
    "subject": "Anatomy",
    "edition": "4th",
    "syllabus": "CCIM",
}


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.store = Store(MemoryBackend())
        self.catalog = CatalogStore(self.store)
        app.dependency_overrides[get_store] = lambda: self.store
        app.dependency_overrides[get_accounts] = lambda: AccountService(
            self.store, hasher=BcryptHasher(rounds=4)
        )
        self.addCleanup(app.dependency_overrides.clear)
        self.client = TestClient(app)

    def register(self, username="alice", display_name="Alice"):
        resp = self.client.post(
            "/api/auth/register",
            json={"username": username, "password": "secret", "displayName": display_name},
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        return resp.json()

    def upload(self, **overrides):
        resp = self.client.post("/api/catalog/books", json={**BOOK_FORM, **overrides})
        self.assertEqual(resp.status_code, 200, resp.text)
        return resp.json()


class HealthTests(ApiTestCase):
    def test_health(self):
        self.assertEqual(self.client.get("/").json()["status"], "ok")


class AuthApiTests(ApiTestCase):
    def test_register_login_logout(self):
        user = self.register()
        self.assertEqual(self.client.get("/api/auth/me").json()["id"], user["id"])
        self.assertNotIn("passwordHash", user)

        self.client.post("/api/auth/logout")
        self.assertIsNone(self.client.get("/api/auth/me").json())

        resp = self.client.post("/api/auth/login", json={"username": "ALICE", "password": "secret"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["id"], user["id"])

    def test_duplicate_username(self):
        self.register("alice")
        resp = self.client.post(
            "/api/auth/register",
            json={"username": "Alice", "password": "x", "displayName": "Other"},
        )
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["detail"], "Username already exists")

    def test_bad_credentials(self):
        self.register()
        wrong = self.client.post("/api/auth/login", json={"username": "alice", "password": "bad"})
        missing = self.client.post("/api/auth/login", json={"username": "bob", "password": "secret"})
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(wrong.json(), missing.json())

    def test_register_requires_all_fields(self):
        resp = self.client.post("/api/auth/register", json={"username": "alice", "password": "pw"})
        self.assertEqual(resp.status_code, 400)


class BookApiTests(ApiTestCase):
    def test_upload_requires_login(self):
        resp = self.client.post("/api/catalog/books", json=BOOK_FORM)
        self.assertEqual(resp.status_code, 403)

    def test_upload_reports_blank_fields(self):
        self.register()
        resp = self.client.post("/api/catalog/books", json={**BOOK_FORM, "title": " ", "edition": ""})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["errors"], {"title": "Required", "edition": "Required"})

    def test_upload_and_list(self):
        user = self.register()
        book = self.upload(title="  Gray's Anatomy  ")
        self.assertEqual(book["title"], "Gray's Anatomy")
        self.assertEqual(book["uploaderId"], user["id"])
        self.upload(**{"title": "Harrison's", "subject": "Internal Medicine", "syllabus": "NCISM"})

        listing = self.client.get("/api/catalog/books").json()
        self.assertEqual(listing["total"], 2)
        self.assertEqual(listing["items"][0]["title"], "Harrison's")
        self.assertEqual(listing["items"][1]["averageRating"], 0)

        filtered = self.client.get("/api/catalog/books", params={"subject": "anat"}).json()
        self.assertEqual([b["id"] for b in filtered["items"]], [book["id"]])
        by_syllabus = self.client.get("/api/catalog/books", params={"syllabus": "ncism"}).json()
        self.assertEqual([b["title"] for b in by_syllabus["items"]], ["Harrison's"])

        self.assertEqual(
            self.client.get("/api/catalog/subjects").json(), ["Anatomy", "Internal Medicine"]
        )

    def test_get_missing_book(self):
        self.assertEqual(self.client.get("/api/catalog/books/nope").status_code, 404)

    def test_only_uploader_can_edit(self):
        self.register("alice")
        book = self.upload()
        self.client.post("/api/auth/logout")
        self.register("bob", "Bob")
        resp = self.client.put(f"/api/catalog/books/{book['id']}", json={**BOOK_FORM, "edition": "5th"})
        self.assertEqual(resp.status_code, 403)

    def test_edit_keeps_position(self):
        self.register()
        first = self.upload(title="First")
        self.upload(title="Second")
        resp = self.client.put(f"/api/catalog/books/{first['id']}", json={**BOOK_FORM, "title": "First, 2nd ed"})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertGreaterEqual(resp.json()["updatedAt"], first["updatedAt"])
        titles = [b.title for b in self.catalog.list_books()]
        self.assertEqual(titles, ["Second", "First, 2nd ed"])

    def test_delete_needs_confirmation_and_cascades(self):
        self.register()
        book = self.upload()
        self.client.post(f"/api/catalog/books/{book['id']}/reviews", json={"rating": 4, "comment": "Clear"})

        resp = self.client.delete(f"/api/catalog/books/{book['id']}")
        self.assertEqual(resp.status_code, 400)
        self.assertIsNotNone(self.catalog.get_book(book["id"]))

        resp = self.client.delete(f"/api/catalog/books/{book['id']}", params={"confirm": "true"})
        self.assertEqual(resp.status_code, 200)
        self.assertIsNone(self.catalog.get_book(book["id"]))
        self.assertEqual(self.catalog.reviews_for_book(book["id"]), [])

        again = self.client.delete(f"/api/catalog/books/{book['id']}", params={"confirm": "true"})
        self.assertEqual(again.status_code, 200)


class AttachmentApiTests(ApiTestCase):
    def test_attach_and_download(self):
        self.register()
        book = self.upload()
        resp = self.client.post(
            f"/api/catalog/books/{book['id']}/attachment",
            files={"file": ("notes.txt", b"chapter one", "text/plain")},
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["fileName"], "notes.txt")

        download = self.client.get(f"/api/catalog/books/{book['id']}/attachment")
        self.assertEqual(download.status_code, 200)
        self.assertEqual(download.content, b"chapter one")
        self.assertTrue(download.headers["content-type"].startswith("text/plain"))

    def test_download_with_non_latin_name(self):
        self.register()
        book = self.upload()
        resp = self.client.post(
            f"/api/catalog/books/{book['id']}/attachment",
            files={"file": ("Атлас.txt", b"hello", "text/plain")},
        )
        self.assertEqual(resp.status_code, 200, resp.text)

        download = self.client.get(f"/api/catalog/books/{book['id']}/attachment")
        self.assertEqual(download.status_code, 200)
        self.assertEqual(download.content, b"hello")
        self.assertIn("filename*=UTF-8''", download.headers["content-disposition"])

    def test_rejects_unsupported_type(self):
        self.register()
        book = self.upload()
        resp = self.client.post(
            f"/api/catalog/books/{book['id']}/attachment",
            files={"file": ("cover.png", b"\x89PNG", "image/png")},
        )
        self.assertEqual(resp.status_code, 400)

    def test_download_without_attachment(self):
        self.register()
        book = self.upload()
        self.assertEqual(self.client.get(f"/api/catalog/books/{book['id']}/attachment").status_code, 404)


class ReviewApiTests(ApiTestCase):
    def test_anonymous_review(self):
        self.catalog.seed_if_empty()
        book = self.catalog.list_books()[0]
        resp = self.client.post(f"/api/catalog/books/{book.id}/reviews", json={"comment": "  Useful  "})
        self.assertEqual(resp.status_code, 200, resp.text)
        review = resp.json()
        self.assertEqual(review["rating"], 5)
        self.assertEqual(review["comment"], "Useful")
        self.assertIsNone(review["userId"])

    def test_review_uses_display_name_of_current_user(self):
        self.register(display_name="Dr. Alice")
        book = self.upload()
        review = self.client.post(
            f"/api/catalog/books/{book['id']}/reviews", json={"rating": 3, "comment": "Dense"}
        ).json()
        self.assertEqual(review["displayName"], "Dr. Alice")

    def test_review_validation(self):
        self.catalog.seed_if_empty()
        book_id = self.catalog.list_books()[0].id
        blank = self.client.post(f"/api/catalog/books/{book_id}/reviews", json={"rating": 4, "comment": "  "})
        self.assertEqual(blank.status_code, 400)
        out_of_range = self.client.post(f"/api/catalog/books/{book_id}/reviews", json={"rating": 6, "comment": "x"})
        self.assertEqual(out_of_range.status_code, 422)
        missing = self.client.post("/api/catalog/books/nope/reviews", json={"rating": 4, "comment": "x"})
        self.assertEqual(missing.status_code, 404)

    def test_listing_shows_average(self):
        self.catalog.seed_if_empty()
        book_id = self.catalog.list_books()[0].id
        for rating in (5, 4):
            self.client.post(f"/api/catalog/books/{book_id}/reviews", json={"rating": rating, "comment": "ok"})
        item = next(b for b in self.client.get("/api/catalog/books").json()["items"] if b["id"] == book_id)
        self.assertEqual(item["averageRating"], 4.5)
        self.assertEqual(item["reviewCount"], 2)
        reviews = self.client.get(f"/api/catalog/books/{book_id}/reviews").json()
        self.assertEqual([r["rating"] for r in reviews], [4, 5])


if __name__ == "__main__":
    unittest.main()
