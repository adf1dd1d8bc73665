from dataclasses import dataclass, field
from struct import pack, unpack_from
import contextlib
import io
import os
import random
import tempfile
import unittest
import zipfile
from ff7_lgp.serialization import Serializable, Numeric, ResizableBuffer, FixedArray, SerializationError
from ff7_lgp import lgp, lzss, util
from ff7_lgp.lgp import Archive, ChangeKind, FormatError, ValidationError, compute_hash, build_hash_index, DirectoryEntry
from ff7_lgp.filetypes import file_type
from ff7_lgp.cli import main


U8 = Numeric.U8
U16 = Numeric.U16
U32 = Numeric.U32


def make_archive(files, path_groups=(), hash_table=None, magic=b"SQUARESOFT", kind_tag=0x0e):
    """Builds an archive by hand. files is a list of (name, payload) or (name, payload, path_group_index)"""
    data_offset = 16 + 27 * len(files) + 3600 + 2
    for group in path_groups:
        data_offset += 2 + 130 * len(group)

    out = bytearray(pack("<H10sHH", 0, magic, len(files), 0))
    blocks = bytearray()
    offset = data_offset
    for item in files:
        (name, payload) = item[:2]
        path_index = item[2] if len(item) > 2 else 0
        out += pack("<20sLBH", name.encode("ascii"), offset, kind_tag, path_index)
        blocks += pack("<20sL", name.encode("ascii"), len(payload)) + payload
        offset += 24 + len(payload)
    out += hash_table if hash_table is not None else bytes(3600)
    out += pack("<H", len(path_groups))
    for group in path_groups:
        out += pack("<H", len(group))
        for (folder, index) in group:
            out += pack("<128sH", folder.encode("ascii"), index)
    out += blocks
    out += b"FINAL FANTASY7"
    return bytes(out)


def payload(seed, size):
    return random.Random(seed).randbytes(size)


@dataclass
class MyBasicStruct(Serializable):
    a: U8 = 0
    b: U16 = 0
    c: U32 = 0


@dataclass
class MyFixedArrayStruct(Serializable):
    name: FixedArray(U8, 16) = field(default_factory=list)
    flags: U32 = 0


class TestSerialization(unittest.TestCase):
    def test_basic_struct_type_size(self):
        self.assertEqual(MyBasicStruct.type_size(), 7)

    def test_record_sizes(self):
        self.assertEqual(lgp.HEADER_SIZE, 16)
        self.assertEqual(lgp.DIRECTORY_RECORD_SIZE, 27)
        self.assertEqual(lgp.HASH_TABLE_SIZE, 3600)
        self.assertEqual(lgp.PATH_RECORD_SIZE, 130)
        self.assertEqual(lgp.FILE_HEADER_SIZE, 24)

    def test_resizable_buffer_pack(self):
        buf = ResizableBuffer()
        buf.pack("<L", 123)
        self.assertEqual(buf.capacity, 4)
        self.assertEqual(buf.offset, 4)

    def test_resizable_buffer_write_into_preallocated(self):
        buf = ResizableBuffer(size=8)
        buf.seek(2)
        buf.write(b"\xde\xad")
        self.assertEqual(buf.buffer, b"\0\0\xde\xad\0\0\0\0")
        buf.seek(10)
        self.assertEqual(buf.capacity, 10)

    def test_serialize_little_endian(self):
        buf = ResizableBuffer()
        offset = MyBasicStruct(a=1, b=0x0203, c=0xdeadbeef).serialize_into(buf)
        self.assertEqual(offset, 0)
        self.assertEqual(buf.buffer, b"\x01\x03\x02\xef\xbe\xad\xde")

    def test_fixed_array_is_padded(self):
        buf = ResizableBuffer()
        item = MyFixedArrayStruct(name=list(str.encode("deadbeef")), flags=0xdeadbeef)
        item.serialize_into(buf)
        self.assertEqual(buf.buffer[0:8], b"deadbeef")
        self.assertEqual(buf.buffer[8:16], b"\0\0\0\0\0\0\0\0")
        self.assertEqual(buf.buffer[16:20], b"\xef\xbe\xad\xde")

    def test_fixed_array_truncation_warns(self):
        buf = ResizableBuffer()
        with self.assertWarns(UserWarning):
            MyFixedArrayStruct(name=list(range(20))).serialize_into(buf)
        self.assertEqual(buf.offset, 20)

    def test_value_out_of_range(self):
        with self.assertRaises(SerializationError):
            MyBasicStruct(b=70000).serialize_into(ResizableBuffer())

    def test_deserialize(self):
        buf = b"deadbeef\0\0\0\0\0\0\0\0\xef\xbe\xad\xde"
        (result, offset) = MyFixedArrayStruct.deserialize_from(buf)
        self.assertEqual(offset, 20)
        self.assertEqual(bytes(result.name[0:8]).decode(), "deadbeef")
        self.assertEqual(result.flags, 0xdeadbeef)

    def test_read_sequence(self):
        buf = pack("<BHL", 1, 2, 3) + pack("<BHL", 4, 5, 6)
        items = MyBasicStruct.read_sequence(buf, 0, 2)
        self.assertEqual(items, [MyBasicStruct(1, 2, 3), MyBasicStruct(4, 5, 6)])
        self.assertEqual(MyBasicStruct.read_sequence(buf, 0, 0), [])


class TestHash(unittest.TestCase):
    def test_known_values(self):
        self.assertEqual(compute_hash("aaaa.p"), 1)
        self.assertEqual(compute_hash("ba.x"), 31)
        self.assertEqual(compute_hash("z"), 750)
        self.assertEqual(compute_hash("9z.tex"), 9 * 30 + 26)
        self.assertEqual(compute_hash("0"), 0)

    def test_case_insensitive(self):
        self.assertEqual(compute_hash("AB.p"), compute_hash("ab.p"))

    def test_symbol_aliases(self):
        self.assertEqual(compute_hash("_a"), compute_hash("ka"))
        self.assertEqual(compute_hash("a-"), compute_hash("al"))
        self.assertEqual(compute_hash("-"), compute_hash("l"))

    def test_stem_ends_at_first_dot(self):
        self.assertEqual(compute_hash("a.b.c"), compute_hash("a"))
        self.assertEqual(compute_hash("ab.cd.ef"), compute_hash("ab"))

    def test_empty_stem(self):
        with self.assertRaises(ValidationError):
            compute_hash(".p")
        with self.assertRaises(ValidationError):
            compute_hash("")

    def test_invalid_character(self):
        with self.assertRaises(ValidationError):
            compute_hash("a!b.p")
        with self.assertRaises(ValidationError):
            compute_hash(" a.p")

    def test_range(self):
        alphabet = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_-"
        for first in alphabet:
            self.assertTrue(0 <= compute_hash(first) <= 899)
            for second in alphabet:
                h = compute_hash(first + second + ".x")
                self.assertTrue(0 <= h <= 899)
                self.assertEqual(h, compute_hash(first + second + ".x"))

    def test_build_hash_index(self):
        entries = [DirectoryEntry(filename=name) for name in ["aa.p", "ab.p", "aa.q", "b"]]
        slots = build_hash_index(entries)
        self.assertEqual(len(slots), 900)
        self.assertEqual((slots[1].first_entry_index, slots[1].match_count), (1, 2))
        self.assertEqual((slots[2].first_entry_index, slots[2].match_count), (2, 1))
        self.assertEqual((slots[30].first_entry_index, slots[30].match_count), (4, 1))
        self.assertEqual(sum(slot.match_count for slot in slots), 4)


class TestArchive(unittest.TestCase):
    def setUp(self):
        self.files = [
            ("aaaa.p", payload(1, 100)),
            ("cloud.hrc", payload(2, 37), 1),
            ("empty.txt", b""),
            ("ab.tex", payload(3, 5000), 1),
        ]
        self.groups = [[("char/cloud", 1), ("char/tex", 3)]]
        self.data = make_archive(self.files, self.groups)

    def test_end_to_end_single_file(self):
        body = payload(7, 100)
        archive = Archive.open(make_archive([("aaaa.p", body)]))
        self.assertEqual([entry.filename for entry in archive.list()], ["aaaa.p"])
        self.assertEqual(archive.get_file("aaaa.p"), body)
        reopened = Archive.open(archive.write_archive())
        self.assertEqual(reopened.get_file("aaaa.p"), body)
        self.assertEqual(reopened.magic, "SQUARESOFT")

    def test_bad_magic(self):
        with self.assertRaises(FormatError):
            Archive.open(make_archive([("aaaa.p", b"x")], magic=b"SQUAREHARD"))

    def test_truncated(self):
        with self.assertRaises(FormatError):
            Archive.open(self.data[:10])
        with self.assertRaises(FormatError):
            Archive.open(self.data[:200])
        # Last payload cut short
        with self.assertRaises(FormatError):
            Archive.open(self.data[:-100])

    def test_parse(self):
        archive = Archive.open(self.data)
        self.assertEqual(archive.file_count, 4)
        self.assertEqual(len(archive.hash_index), 900)
        entries = archive.list()
        self.assertEqual([e.filename for e in entries], [f[0] for f in self.files])
        # Sizes come from the file blocks
        self.assertEqual([e.runtime_filesize for e in entries], [100, 37, 0, 5000])
        self.assertEqual(entries[1].path_group_index, 1)
        self.assertEqual(archive.path_groups[0].entries[1].folder_name, "char/tex")
        for item in self.files:
            self.assertEqual(archive.get_file(item[0]), item[1])

    def test_list_is_a_snapshot(self):
        archive = Archive.open(self.data)
        archive.list()[0].filename = "changed"
        self.assertEqual(archive.list()[0].filename, "aaaa.p")

    def test_get_missing_file(self):
        archive = Archive.open(self.data)
        self.assertIsNone(archive.get_file("nope.p"))
        self.assertIsNone(archive.get_file("AAAA.P"))

    def test_round_trip(self):
        archive = Archive.open(self.data)
        reopened = Archive.open(archive.write_archive())
        self.assertEqual({e.filename for e in reopened.list()}, {f[0] for f in self.files})
        for item in self.files:
            self.assertEqual(reopened.get_file(item[0]), archive.get_file(item[0]))
        self.assertEqual(reopened.path_groups, archive.path_groups)

    def test_write_is_idempotent(self):
        archive = Archive.open(self.data)
        self.assertEqual(archive.write_archive(), archive.write_archive())

    def test_rewrite_of_written_archive_is_stable(self):
        first = Archive.open(self.data).write_archive()
        self.assertEqual(Archive.open(first).write_archive(), first)

    def test_layout(self):
        archive = Archive.open(self.data)
        written = archive.write_archive()
        self.assertEqual(len(written), archive.archive_size())
        self.assertTrue(written.endswith(b"FINAL FANTASY7"))
        reopened = Archive.open(written)
        offsets = [e.stored_offset for e in reopened.list()]
        self.assertEqual(offsets[0], archive.data_offset())
        for (entry, next_offset) in zip(reopened.list(), offsets[1:]):
            self.assertEqual(entry.stored_offset + 24 + entry.runtime_filesize, next_offset)

    def test_hash_index_is_rebuilt(self):
        archive = Archive.open(self.data)
        self.assertFalse(archive.hash_index_is_consistent())
        reopened = Archive.open(archive.write_archive())
        self.assertTrue(reopened.hash_index_is_consistent())
        slot = reopened.hash_index[compute_hash("aaaa.p")]
        self.assertEqual((slot.first_entry_index, slot.match_count), (1, 1))

    def test_kind_tag_is_stamped(self):
        archive = Archive.open(make_archive([("aaaa.p", b"abc")], kind_tag=0x03))
        self.assertEqual(archive.list()[0].kind_tag, 0x03)
        self.assertEqual(Archive.open(archive.write_archive()).list()[0].kind_tag, lgp.DEFAULT_KIND_TAG)
        preserved = Archive.open(archive.write_archive(preserve_kind_tags=True))
        self.assertEqual(preserved.list()[0].kind_tag, 0x03)

    def test_set_file(self):
        archive = Archive.open(self.data)
        self.assertFalse(archive.set_file("nope.p", b"x"))
        self.assertFalse(archive.is_modified())
        self.assertTrue(archive.set_file("cloud.hrc", b"new contents"))
        self.assertEqual(archive.get_file("cloud.hrc"), b"new contents")
        self.assertEqual(archive.entry("cloud.hrc").runtime_filesize, 12)
        self.assertEqual(archive.pending.kind_of("cloud.hrc"), ChangeKind.REPLACED)
        # Source buffer is untouched
        self.assertEqual(Archive.open(self.data).get_file("cloud.hrc"), self.files[1][1])
        reopened = Archive.open(archive.write_archive())
        self.assertEqual(reopened.get_file("cloud.hrc"), b"new contents")
        self.assertEqual(reopened.get_file("ab.tex"), self.files[3][1])

    def test_insert_file(self):
        archive = Archive.open(self.data)
        self.assertTrue(archive.insert_file("new.dat", b"12345"))
        self.assertEqual(archive.file_count, 5)
        self.assertEqual(archive.get_file("new.dat"), b"12345")
        entry = archive.entry("new.dat")
        self.assertEqual((entry.kind_tag, entry.path_group_index), (lgp.DEFAULT_KIND_TAG, 0))
        self.assertFalse(archive.insert_file("new.dat", b"other"))
        self.assertFalse(archive.insert_file("aaaa.p", b"other"))
        self.assertEqual(archive.get_file("new.dat"), b"12345")
        reopened = Archive.open(archive.write_archive())
        self.assertEqual(reopened.get_file("new.dat"), b"12345")
        self.assertEqual(reopened.file_count, 5)

    def test_insert_truncates_name(self):
        archive = Archive.open(self.data)
        self.assertTrue(archive.insert_file("this-name-is-26-chars-x", b"data"))
        self.assertIsNone(archive.get_file("this-name-is-26-chars-x"))
        self.assertEqual(archive.get_file("this-name-is-26-cha"), b"data")
        self.assertFalse(archive.insert_file("this-name-is-26-cha-other", b"more"))
        reopened = Archive.open(archive.write_archive())
        self.assertEqual(reopened.get_file("this-name-is-26-cha"), b"data")

    def test_insert_then_replace(self):
        archive = Archive.open(self.data)
        archive.insert_file("new.dat", b"12345")
        self.assertTrue(archive.set_file("new.dat", b"67"))
        self.assertEqual(archive.pending.kind_of("new.dat"), ChangeKind.INSERTED)
        self.assertEqual(Archive.open(archive.write_archive()).get_file("new.dat"), b"67")

    def test_insert_files_counts(self):
        archive = Archive.open(self.data)
        (inserted, skipped) = archive.insert_files({"x1.p": b"1", "aaaa.p": b"2", "x2.p": b"3"})
        self.assertEqual((inserted, skipped), (2, 1))

    def test_remove_file(self):
        archive = Archive.open(self.data)
        self.assertFalse(archive.remove_file("nope.p"))
        self.assertTrue(archive.remove_file("empty.txt"))
        self.assertEqual(archive.file_count, 3)
        self.assertIsNone(archive.get_file("empty.txt"))
        self.assertNotIn("empty.txt", archive)
        self.assertEqual(archive.pending.kind_of("empty.txt"), ChangeKind.DELETED)
        self.assertFalse(archive.remove_file("empty.txt"))
        reopened = Archive.open(archive.write_archive())
        self.assertEqual([e.filename for e in reopened.list()], ["aaaa.p", "cloud.hrc", "ab.tex"])
        self.assertEqual(reopened.get_file("ab.tex"), self.files[3][1])

    def test_insert_remove_inverse(self):
        archive = Archive.open(self.data)
        before = {e.filename for e in archive.list()}
        archive.insert_file("zz.p", b"abc")
        self.assertTrue(archive.remove_file("zz.p"))
        self.assertEqual({e.filename for e in archive.list()}, before)
        self.assertNotIn("zz.p", archive.pending)
        reopened = Archive.open(archive.write_archive())
        self.assertEqual({e.filename for e in reopened.list()}, before)

    def test_remove_then_insert(self):
        archive = Archive.open(self.data)
        archive.remove_file("aaaa.p")
        self.assertTrue(archive.insert_file("aaaa.p", b"again"))
        self.assertEqual(archive.get_file("aaaa.p"), b"again")
        reopened = Archive.open(archive.write_archive())
        self.assertEqual(reopened.list()[-1].filename, "aaaa.p")
        self.assertEqual(reopened.get_file("aaaa.p"), b"again")

    def test_unhashable_name_fails_write(self):
        archive = Archive.open(self.data)
        self.assertTrue(archive.insert_file("!bad.p", b"x"))
        with self.assertRaises(ValidationError):
            archive.write_archive()

    def test_unencodable_name(self):
        archive = Archive.open(self.data)
        with self.assertRaises(ValidationError):
            archive.insert_file("☃.p", b"x")

    def test_folder_of(self):
        archive = Archive.open(self.data)
        self.assertEqual(archive.folder_of("cloud.hrc"), "char/cloud")
        self.assertEqual(archive.folder_of("ab.tex"), "char/tex")
        self.assertEqual(archive.folder_of("aaaa.p"), "")
        self.assertEqual(archive.folder_of("nope.p"), "")

    def test_path_table_is_copied_verbatim(self):
        archive = Archive.open(self.data)
        archive.remove_file("aaaa.p")
        with self.assertWarns(UserWarning):
            written = archive.write_archive()
        reopened = Archive.open(written)
        self.assertEqual(reopened.path_groups[0].entries[1].directory_index, 3)

    def test_duplicate_names_warn(self):
        data = make_archive([("aa.p", b"first"), ("aa.p", b"second")])
        with self.assertWarns(UserWarning):
            archive = Archive.open(data)
        self.assertEqual(archive.get_file("aa.p"), b"first")
        archive.remove_file("aa.p")
        self.assertEqual(archive.get_file("aa.p"), b"second")

    def test_sizes(self):
        archive = Archive.open(self.data)
        self.assertEqual(archive.data_offset(), 16 + 27 * 4 + 3600 + 2 + 2 + 2 * 130)
        self.assertEqual(archive.total_payload_size(), 100 + 37 + 5000)
        self.assertEqual(archive.archive_size(), len(self.data))

    def test_files_on_disk(self):
        archive = Archive.open(self.data)
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "char.lgp")
            archive.save(path)
            reopened = lgp.read_archive(path)
            self.assertEqual(reopened.get_file("cloud.hrc"), self.files[1][1])

            written = reopened.extract_all(os.path.join(tmpdir, "out"), ["cloud.hrc", "nope.p"])
            self.assertEqual(written, ["cloud.hrc"])
            with open(os.path.join(tmpdir, "out", "cloud.hrc"), "rb") as f:
                self.assertEqual(f.read(), self.files[1][1])

            zip_path = os.path.join(tmpdir, "out.zip")
            self.assertEqual(len(reopened.extract_zip(zip_path)), 4)
            with zipfile.ZipFile(zip_path) as zf:
                self.assertEqual(zf.read("ab.tex"), self.files[3][1])


class TestLzss(unittest.TestCase):
    def assertRoundTrip(self, data):
        self.assertEqual(lzss.decompress(lzss.compress(data)), data)

    def test_empty(self):
        self.assertEqual(lzss.compress(b""), b"")
        self.assertEqual(lzss.decompress(b""), b"")

    def test_round_trip_short(self):
        for data in [b"a", b"ab", b"abc", b"aaaa", bytes(5), b"\xff" * 40]:
            self.assertRoundTrip(data)

    def test_round_trip_text(self):
        text = b"Cloud Strife, Barret Wallace, Tifa Lockhart, Aerith Gainsborough. " * 120
        compressed = lzss.compress(text)
        self.assertLess(len(compressed), len(text) // 4)
        self.assertEqual(lzss.decompress(compressed), text)

    def test_round_trip_longer_than_window(self):
        rng = random.Random(1234)
        data = bytearray()
        while len(data) < 12000:
            if rng.random() < 0.5:
                data += rng.randbytes(rng.randint(1, 40))
            else:
                start = rng.randint(0, max(0, len(data) - 1))
                data += data[start:start + rng.randint(3, 30)]
        self.assertRoundTrip(bytes(data))

    def test_round_trip_random(self):
        self.assertRoundTrip(random.Random(99).randbytes(6000))

    def test_round_trip_repeating_period_over_window(self):
        block = random.Random(5).randbytes(4100)
        self.assertRoundTrip(block + block + block[:100])

    def test_leading_zeros_use_window_prefill(self):
        data = bytes(100) + b"tail"
        compressed = lzss.compress(data)
        self.assertEqual(compressed[0] & 1, 0)
        self.assertEqual(lzss.decompress(compressed), data)

    def test_overlapping_copy(self):
        # Literal 'A' then a reference of length 10 one byte back
        stream = bytes([0b01, 0x41, 0xee, 0xf7])
        self.assertEqual(lzss.decompress(stream), b"A" * 11)

    def test_negative_position_zero_fill(self):
        # Literal 'X' then a reference of length 5 starting two bytes before the stream
        stream = bytes([0b01, ord("X"), 0xec, 0xf2])
        self.assertEqual(lzss.decompress(stream), b"X\0\0X\0\0")

    def test_reference_into_prefill_only(self):
        stream = bytes([0x00, 0x00, 0x0f])
        self.assertEqual(lzss.decompress(stream), bytes(18))

    def test_truncated_stream_stops(self):
        data = b"Midgar Sector 7 " * 50 + random.Random(3).randbytes(50)
        compressed = lzss.compress(data)
        for cut in (1, 2, 3, len(compressed) // 2):
            result = lzss.decompress(compressed[:-cut])
            self.assertTrue(data.startswith(result))
            self.assertLess(len(result), len(data))
        self.assertEqual(lzss.decompress(b"\x00"), b"")
        self.assertEqual(lzss.decompress(b"\x00\x05"), b"")

    def test_lzs_framing(self):
        data = b"field data " * 64
        framed = lzss.compress_lzs(data)
        (size, ) = unpack_from("<L", framed)
        self.assertEqual(size, len(framed) - 4)
        self.assertEqual(lzss.decompress_lzs(framed), data)

    def test_lzs_truncated_warns(self):
        framed = lzss.compress_lzs(b"field data " * 64)
        with self.assertWarns(UserWarning):
            result = lzss.decompress_lzs(framed[:-5])
        self.assertTrue((b"field data " * 64).startswith(result))
        with self.assertWarns(UserWarning):
            self.assertEqual(lzss.decompress_lzs(b"\x01"), b"")

    def test_compressed_payload_in_archive(self):
        body = b"battle scene " * 200
        archive = Archive.open(make_archive([("aaaa.p", b"x")]))
        archive.insert_file("scene.lzs", lzss.compress_lzs(body))
        reopened = Archive.open(archive.write_archive())
        self.assertEqual(lzss.decompress_lzs(reopened.get_file("scene.lzs")), body)


class TestUtil(unittest.TestCase):
    def test_format_file_size(self):
        self.assertEqual(util.format_file_size(0), "0 B")
        self.assertEqual(util.format_file_size(100), "100 B")
        self.assertEqual(util.format_file_size(1536), "1.5 KB")
        self.assertEqual(util.format_file_size(1024 * 1024, 2), "1.00 MB")

    def test_names(self):
        self.assertEqual(util.bytes_to_string(list(b"abc\0garbage")), "abc")
        self.assertEqual(util.truncate_name("abcdef", 3), "abc")
        self.assertEqual(util.string_to_bytes("ab", 4), [0x61, 0x62])

    def test_file_type(self):
        self.assertEqual(file_type("aaaa.bin"), "Field Script")
        self.assertEqual(file_type("ancn"), "Field")
        self.assertEqual(file_type("cloud.P"), "Model")
        self.assertEqual(file_type("world_us.lgp"), "World Archive")
        self.assertEqual(file_type("char.lgp"), "Archive")
        self.assertEqual(file_type("scene.lzs"), "Compressed")
        self.assertEqual(file_type("readme"), "Unknown")
        self.assertEqual(file_type("x.unknown"), "Unknown")


class TestCli(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, "char.lgp")
        with open(self.path, "wb") as f:
            f.write(make_archive([("aaaa.p", b"hello"), ("ba.hrc", b"world")]))

    def tearDown(self):
        self.tmpdir.cleanup()

    def run_cli(self, *argv):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            main(list(argv))
        return out.getvalue()

    def test_list(self):
        output = self.run_cli("list", self.path)
        self.assertIn("aaaa.p", output)
        self.assertIn("Skeleton", output)

    def test_info(self):
        output = self.run_cli("info", self.path)
        self.assertIn("Files:        2", output)

    def test_insert_and_remove(self):
        new_file = os.path.join(self.tmpdir.name, "new.dat")
        with open(new_file, "wb") as f:
            f.write(b"inserted")
        out_path = os.path.join(self.tmpdir.name, "out.lgp")
        output = self.run_cli("insert", self.path, new_file, "-o", out_path)
        self.assertIn("Inserted 1 file(s)", output)
        self.assertEqual(lgp.read_archive(out_path).get_file("new.dat"), b"inserted")
        self.run_cli("remove", out_path, "aaaa.p")
        self.assertNotIn("aaaa.p", lgp.read_archive(out_path))

    def test_replace_missing(self):
        with self.assertRaises(SystemExit):
            self.run_cli("replace", self.path, "nope.p", self.path)

    def test_bad_archive(self):
        bad = os.path.join(self.tmpdir.name, "bad.lgp")
        with open(bad, "wb") as f:
            f.write(b"not an archive at all")
        with self.assertRaises(SystemExit):
            self.run_cli("list", bad)

    def test_codec_commands(self):
        raw = os.path.join(self.tmpdir.name, "raw.bin")
        packed = os.path.join(self.tmpdir.name, "raw.lzs")
        unpacked = os.path.join(self.tmpdir.name, "raw.out")
        with open(raw, "wb") as f:
            f.write(b"abcabcabc" * 100)
        self.run_cli("compress", raw, packed, "--lzs")
        self.run_cli("decompress", packed, unpacked, "--lzs")
        with open(unpacked, "rb") as f:
            self.assertEqual(f.read(), b"abcabcabc" * 100)


if __name__ == '__main__':
    unittest.main()
