# tests/test_raw.py
from sqld.errors import SqldError
from sqld.services.raw import raw

from dbcase import SQLiteTestCase


class TestRaw(SQLiteTestCase):
    def assertBadRequest(self, body, contains=None):
        with self.assertRaises(SqldError) as cm:
            raw(self.ctx, body)
        self.assertEqual(cm.exception.code, 400)
        if contains:
            self.assertIn(contains, cm.exception.message)

    def test_unknown_field(self):
        self.assertBadRequest(b'{"invalid": "SELECT * FROM t1"}')

    def test_malformed_json(self):
        self.assertBadRequest(b'{"invalid": }', contains="invalid JSON body")

    def test_not_an_object(self):
        self.assertBadRequest(b'["SELECT 1"]')

    def test_wrong_type(self):
        self.assertBadRequest(b'{"read": 5}')

    def test_both_set(self):
        self.assertBadRequest(
            b'{"read": "SELECT * FROM t1", "write": "DELETE FROM t1"}',
            contains="only one",
        )
        self.assertEqual(len(self.fetch("SELECT * FROM t1")), 2)

    def test_bad_read_sql(self):
        self.assertBadRequest(b'{"read": "NOT VALID SQL"}', contains="syntax error")

    def test_bad_write_sql(self):
        self.assertBadRequest(b'{"write": "NOT VALID SQL"}', contains="syntax error")

    def test_read(self):
        rows = raw(self.ctx, b'{"read": "SELECT * FROM t1"}')
        self.assertEqual(len(rows), 2)
        self.assertIn(rows[0]["a"], ["hi", "how"])
        self.assertIn(rows[0]["b"], ["there", "dy"])

    def test_write(self):
        out = raw(
            self.ctx, b'{"write": "INSERT INTO t1 (a, b) VALUES (\'more\', \'words\')"}'
        )
        self.assertEqual(out, {"last_insert_id": 3, "rows_affected": 1})
        self.assertEqual(self.fetch("SELECT a FROM t1 WHERE b='words'"), [("more",)])
