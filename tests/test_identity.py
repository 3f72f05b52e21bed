import unittest

from ledger_audit.core.errors import InvalidIdentity
from ledger_audit.core.identity import Principal


class TestPrincipal(unittest.TestCase):
    def test_well_known_text_forms(self):
        self.assertEqual(Principal(b"").to_text(), "aaaaa-aa")
        self.assertEqual(Principal(b"\x04").to_text(), "2vxsx-fae")

    def test_parse_round_trip(self):
        for text in ("aaaaa-aa", "2vxsx-fae"):
            self.assertEqual(Principal.from_text(text).to_text(), text)

        p = Principal(bytes(range(1, 11)))
        self.assertEqual(Principal.from_text(p.to_text()), p)

    def test_value_semantics(self):
        self.assertEqual(Principal(b"\x01"), Principal(b"\x01"))
        self.assertNotEqual(Principal(b"\x01"), Principal(b"\x02"))
        self.assertEqual(len({Principal(b"\x01"), Principal(b"\x01")}), 1)
        with self.assertRaises(AttributeError):
            Principal(b"\x01").foo = 1

    def test_rejects_bad_checksum(self):
        with self.assertRaises(InvalidIdentity):
            Principal.from_text("2vxsx-fad")

    def test_rejects_non_canonical(self):
        for text in ("2VXSX-FAE", "2vxsxfae", "2vx-sxfae"):
            with self.assertRaises(InvalidIdentity, msg=text):
                Principal.from_text(text)

    def test_rejects_garbage(self):
        for text in ("", "not a principal!", "a", "0000-11"):
            with self.assertRaises(InvalidIdentity, msg=text):
                Principal.from_text(text)

    def test_rejects_oversized(self):
        with self.assertRaises(InvalidIdentity):
            Principal(bytes(30))


if __name__ == '__main__':
    unittest.main()
