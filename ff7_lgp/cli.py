import argparse
import os
from typing import Iterable
from . import lzss, util
from .filetypes import file_type
from .lgp import LgpError, read_archive


def _read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def _write_bytes(path: str, data: bytes):
    with open(path, "wb") as f:
        f.write(data)


def cmd_info(args):
    archive = read_archive(args.archive)
    print("Magic:        {}".format(archive.magic))
    print("Files:        {}".format(archive.file_count))
    print("Path groups:  {}".format(len(archive.path_groups)))
    print("Payload size: {}".format(util.format_file_size(archive.total_payload_size(), 2)))
    print("Archive size: {}".format(util.format_file_size(archive.archive_size(), 2)))
    print("Hash table:   {}".format("consistent" if archive.hash_index_is_consistent() else "stale"))


def cmd_list(args):
    archive = read_archive(args.archive)
    for (i, entry) in enumerate(archive.list()):
        folder = archive.folder_of(entry.filename)
        print("{:5d}  {:<19}  {:>10}  {:<14}  {}".format(
            i, entry.filename, util.format_file_size(entry.runtime_filesize), file_type(entry.filename), folder))


def cmd_extract(args):
    archive = read_archive(args.archive)
    names = args.names or None
    if args.zip:
        written = archive.extract_zip(args.output, names)
        print("Extracted {} file(s) into {}".format(len(written), args.output))
    else:
        written = archive.extract_all(args.output, names)
        print("Extracted {} file(s) to {}".format(len(written), args.output))
    if names:
        for name in sorted(set(names) - set(written)):
            print("Not found: {}".format(name))


def cmd_insert(args):
    archive = read_archive(args.archive)
    files = {os.path.basename(path): _read_bytes(path) for path in args.files}
    (inserted, skipped) = archive.insert_files(files)
    archive.save(args.output or args.archive)
    skipped_msg = " ({} skipped - already exist)".format(skipped) if skipped else ""
    print("Inserted {} file(s){}".format(inserted, skipped_msg))


def cmd_replace(args):
    archive = read_archive(args.archive)
    if not archive.set_file(args.name, _read_bytes(args.file)):
        raise SystemExit("'{}' is not in {}".format(args.name, args.archive))
    archive.save(args.output or args.archive)
    print("Replaced {} with {}".format(args.name, args.file))


def cmd_remove(args):
    archive = read_archive(args.archive)
    removed = 0
    for name in args.names:
        if archive.remove_file(name):
            removed += 1
        else:
            print("Not found: {}".format(name))
    archive.save(args.output or args.archive)
    print("Removed {} file(s)".format(removed))


def cmd_decompress(args):
    data = _read_bytes(args.input)
    out = lzss.decompress_lzs(data) if args.lzs else lzss.decompress(data)
    _write_bytes(args.output, out)
    print("Decompressed {} -> {} bytes".format(len(data), len(out)))


def cmd_compress(args):
    data = _read_bytes(args.input)
    out = lzss.compress_lzs(data) if args.lzs else lzss.compress(data)
    _write_bytes(args.output, out)
    print("Compressed {} -> {} bytes".format(len(data), len(out)))


def build_cli() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ff7-lgp", description="Inspect and edit LGP archives and LZSS compressed files")
    subparsers = parser.add_subparsers(dest="command", required=True)

    info_parser = subparsers.add_parser("info", help="show a summary of an archive")
    info_parser.add_argument("archive", help="path to the .lgp archive")
    info_parser.set_defaults(func=cmd_info)

    list_parser = subparsers.add_parser("list", help="list the files of an archive")
    list_parser.add_argument("archive", help="path to the .lgp archive")
    list_parser.set_defaults(func=cmd_list)

    extract_parser = subparsers.add_parser("extract", help="extract files from an archive")
    extract_parser.add_argument("archive", help="path to the .lgp archive")
    extract_parser.add_argument("output", help="directory (or zip file with --zip) that receives the files")
    extract_parser.add_argument("names", nargs="*", help="files to extract, all files if omitted")
    extract_parser.add_argument("--zip", action="store_true", help="write a zip file instead of a directory")
    extract_parser.set_defaults(func=cmd_extract)

    insert_parser = subparsers.add_parser("insert", help="add files to an archive")
    insert_parser.add_argument("archive", help="path to the .lgp archive")
    insert_parser.add_argument("files", nargs="+", help="files to add, stored under their base name")
    insert_parser.add_argument("-o", "--output", help="write the result here instead of overwriting the archive")
    insert_parser.set_defaults(func=cmd_insert)

    replace_parser = subparsers.add_parser("replace", help="replace the contents of a file in an archive")
    replace_parser.add_argument("archive", help="path to the .lgp archive")
    replace_parser.add_argument("name", help="name of the file inside the archive")
    replace_parser.add_argument("file", help="file with the new contents")
    replace_parser.add_argument("-o", "--output", help="write the result here instead of overwriting the archive")
    replace_parser.set_defaults(func=cmd_replace)

    remove_parser = subparsers.add_parser("remove", help="remove files from an archive")
    remove_parser.add_argument("archive", help="path to the .lgp archive")
    remove_parser.add_argument("names", nargs="+", help="files to remove")
    remove_parser.add_argument("-o", "--output", help="write the result here instead of overwriting the archive")
    remove_parser.set_defaults(func=cmd_remove)

    for (command, func, verb) in (("decompress", cmd_decompress, "decompress"), ("compress", cmd_compress, "compress")):
        codec_parser = subparsers.add_parser(command, help="{} a file with LZSS".format(verb))
        codec_parser.add_argument("input", help="input file")
        codec_parser.add_argument("output", help="output file")
        codec_parser.add_argument("--lzs", action="store_true", help="use the .lzs framing (u32 compressed size header)")
        codec_parser.set_defaults(func=func)

    return parser


def main(argv: Iterable[str] = None) -> None:
    parser = build_cli()
    args = parser.parse_args(argv)
    try:
        args.func(args)
    except LgpError as err:
        raise SystemExit(str(err))
