# tests/test_handlers.py
import dataclasses
import json
import unittest
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from sqld.api import create_app
from sqld.config.settings import Settings
from sqld.errors import SqldError
from sqld.handlers import create, delete, dispatch, read, update

from dbcase import SQLiteTestCase


class TestDispatch(unittest.TestCase):
    def setUp(self):
        self.ctx = MagicMock(allow_raw=False)

    def test_unknown_method(self):
        with self.assertRaises(SqldError) as cm:
            dispatch(self.ctx, "PATCH", "t1")
        self.assertEqual(cm.exception.code, 405)

    def test_root_without_raw_mode(self):
        with self.assertRaises(SqldError) as cm:
            dispatch(self.ctx, "POST", "", body=b'{"read": "SELECT 1"}')
        self.assertEqual(cm.exception.code, 400)

    def test_root_get_in_raw_mode(self):
        self.ctx.allow_raw = True
        with self.assertRaises(SqldError) as cm:
            dispatch(self.ctx, "GET", "")
        self.assertEqual(cm.exception.code, 400)

    @patch("sqld.handlers.raw", return_value=[{"x": 1}])
    def test_root_post_in_raw_mode(self, raw_mock):
        self.ctx.allow_raw = True
        self.assertEqual(dispatch(self.ctx, "post", "/", body=b"{}"), (200, [{"x": 1}]))
        raw_mock.assert_called_once_with(self.ctx, b"{}")

    @patch("sqld.handlers.read_query", return_value=[])
    def test_get_routes_to_read(self, read_mock):
        self.ctx.placeholder = None
        status, payload = dispatch(self.ctx, "GET", "user/3", "name=a")
        self.assertEqual((status, payload), (200, []))
        read_mock.assert_called_once_with(
            self.ctx, "SELECT * FROM user WHERE id = ? AND name IN (?)", ["3", "a"]
        )


class TestHandlers(SQLiteTestCase):
    def test_read(self):
        data = read(self.ctx, "t1", "")
        self.assertEqual(len(data), 2)

    def test_read_failure_is_internal_error(self):
        with self.assertRaises(SqldError) as cm:
            read(self.ctx, "missing", "")
        self.assertEqual(cm.exception.code, 500)

    def test_create_single(self):
        data = create(self.ctx, "t1", None, b'{"a": "boop", "b": "doop"}')
        self.assertEqual(data["a"], "boop")
        self.assertEqual(data["b"], "doop")
        self.assertIsNotNone(data["id"])

    def test_create_malformed(self):
        for body in (
            b'{"a": "boop", "b": ',
            b'"just a string"',
            b"",
            b'{"a": [1]}',
            b'{"a": NaN, "b": "n1"}',
            b'{"a": Infinity}',
            b"[-Infinity]",
        ):
            with self.assertRaises(SqldError) as cm:
                create(self.ctx, "t1", None, body)
            self.assertEqual(cm.exception.code, 400, body)

    def test_create_failure_is_internal_error(self):
        with self.assertRaises(SqldError) as cm:
            create(self.ctx, "t1", None, b'{"c": "d"}')
        self.assertEqual(cm.exception.code, 500)

    def test_create_unbindable_value_is_internal_error(self):
        with self.assertRaises(SqldError) as cm:
            create(self.ctx, "t1", None, b'{"a": "x", "b": 99999999999999999999999}')
        self.assertEqual(cm.exception.code, 500)
        self.assertIn("too large", cm.exception.message)

    def test_create_batch_with_failures(self):
        data = create(
            self.ctx, "t1", None, b'[{"a": "b", "b": "1"}, {"c": "d"}, {"a": "e", "b": "f"}]'
        )
        self.assertEqual(len(data["errors"]), 1)
        self.assertEqual(sorted(o["b"] for o in data["objects"]), ["1", "f"])

    def test_create_batch_success_is_plain_list(self):
        data = create(self.ctx, "t1", None, b'[{"a": "b", "b": "1"}]')
        self.assertIsInstance(data, list)
        self.assertEqual(data[0]["a"], "b")

    def test_update(self):
        self.assertIsNone(update(self.ctx, "t1", "a=hi", b'{"b": "updated"}'))
        self.assertEqual(self.fetch("SELECT a, b FROM t1 WHERE a=?", "hi"), [("hi", "updated")])

    def test_update_malformed(self):
        with self.assertRaises(SqldError) as cm:
            update(self.ctx, "t1/t1", "a=hi", b'{"a": "boop", "b": ')
        self.assertEqual(cm.exception.code, 400)

    def test_update_no_match(self):
        with self.assertRaises(SqldError) as cm:
            update(self.ctx, "t1", "a=nobody", b'{"b": "x"}')
        self.assertEqual(cm.exception.code, 404)

    def test_delete(self):
        self.assertIsNone(delete(self.ctx, "t1", "a=hi"))
        self.assertEqual(self.fetch("SELECT * FROM t1 WHERE a=?", "hi"), [])

    def test_delete_no_match(self):
        with self.assertRaises(SqldError) as cm:
            delete(self.ctx, "t1", "a=nobody")
        self.assertEqual(cm.exception.code, 404)


class TestHandleQuery(SQLiteTestCase):
    def setUp(self):
        super().setUp()
        self.client = TestClient(create_app(Settings(nolog=True), ctx=self.ctx))

    def test_method_not_allowed(self):
        self.assertEqual(self.client.patch("/t1").status_code, 405)

    def test_get(self):
        res = self.client.get("/t1?a=hi")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json(), [{"a": "hi", "b": "there"}])
        self.assertIn("X-Correlation-ID", res.headers)

    def test_get_limit_offset_order(self):
        res = self.client.get("/t1?__order_by__=a desc&__limit__=1&__offset__=1")
        self.assertEqual(res.json(), [{"a": "hi", "b": "there"}])

    def test_get_bad_order_by(self):
        res = self.client.get("/t1?__order_by__=a;drop")
        self.assertEqual(res.status_code, 400)
        self.assertIn("invalid order by token", res.text)

    def test_get_is_repeatable(self):
        first = self.client.get("/t1?__order_by__=b")
        second = self.client.get("/t1?__order_by__=b")
        self.assertEqual(first.content, second.content)

    def test_post_then_get(self):
        res = self.client.post("/t1", content=json.dumps({"a": "boop", "b": "doop"}))
        self.assertEqual(res.status_code, 201)
        created = res.json()
        self.assertEqual((created["a"], created["b"]), ("boop", "doop"))

        res = self.client.get("/t1?b=doop")
        self.assertEqual(res.json(), [{"a": "boop", "b": "doop"}])

    def test_post_batch(self):
        body = [{"a": "1", "b": "x"}, {"c": "d"}, {"a": "2", "b": "y"}]
        res = self.client.post("/t1", content=json.dumps(body))
        self.assertEqual(res.status_code, 201)
        data = res.json()
        self.assertEqual(len(data["errors"]), 1)
        self.assertEqual(len(data["objects"]), 2)

    def test_post_malformed(self):
        res = self.client.post("/t1", content='{"a": ')
        self.assertEqual(res.status_code, 400)

    def test_post_non_finite_number_is_rejected(self):
        res = self.client.post("/t1", content='{"a": NaN, "b": "n1"}')
        self.assertEqual(res.status_code, 400)
        self.assertEqual(self.fetch("SELECT count(*) FROM t1"), [(2,)])

    def test_put_unbindable_value(self):
        res = self.client.put("/t1?a=hi", content='{"b": 99999999999999999999999}')
        self.assertEqual(res.status_code, 400)
        self.assertIn("too large", res.text)

    def test_get_oversized_limit_is_ignored(self):
        res = self.client.get("/t1?__limit__=99999999999999999999999")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(len(res.json()), 2)

    def test_put_and_delete(self):
        res = self.client.put("/t1?a=hi", content=json.dumps({"a": "for", "b": "sure"}))
        self.assertEqual(res.status_code, 204)
        self.assertEqual(res.text, "")

        res = self.client.delete("/t1?a=for")
        self.assertEqual(res.status_code, 204)
        self.assertEqual(res.text, "")

        res = self.client.delete("/t1?a=for")
        self.assertEqual(res.status_code, 404)

    def test_raw_disabled(self):
        ctx = dataclasses.replace(self.ctx, allow_raw=False)
        client = TestClient(create_app(Settings(nolog=True), ctx=ctx))
        res = client.post("/", content=json.dumps({"read": "SELECT * FROM t1"}))
        self.assertEqual(res.status_code, 400)

    def test_raw_enabled(self):
        res = self.client.post("/", content=json.dumps({"read": "SELECT * FROM t1"}))
        self.assertEqual(res.status_code, 200)
        self.assertEqual(len(res.json()), 2)

    def test_url_prefix(self):
        ctx = dataclasses.replace(self.ctx, root="/api/")
        client = TestClient(create_app(Settings(nolog=True), ctx=ctx))
        self.assertEqual(client.get("/api/t1?a=hi").status_code, 200)
        self.assertEqual(client.get("/t1").status_code, 404)


if __name__ == "__main__":
    unittest.main()
