#!/usr/bin/env python

import sys
from decimal import Decimal
from pathlib import Path
from unittest import TestCase, main

sys.path.append(Path(__file__).resolve().parents[1].as_posix())
from couchrest.streamer import StreamRowParser

VIEW_BODY = (
    '{"total_rows":3,"offset":0,"rows":[\r\n'
    '{"id":"a","key":["a",1],"value":{"nested":{"x":[1,2]}}},\r\n'
    '{"id":"b}","key":"quoted \\" brace ]","value":null},\r\n'
    '{"id":"c","key":"c","value":"\\u00e9"}\r\n'
    ']}'
)


def parse_all(parser: StreamRowParser, chunks):
    rows = []
    for chunk in chunks:
        rows.extend(parser.parse(chunk))
    rows.extend(parser.finish())
    return rows


class ArrayModeTest(TestCase):
    def test_whole_body(self):
        parser = StreamRowParser()
        rows = parse_all(parser, [VIEW_BODY])
        self.assertEqual(['a', 'b}', 'c'], [row['id'] for row in rows])
        self.assertEqual({'nested': {'x': [1, 2]}}, rows[0]['value'])
        self.assertEqual('quoted " brace ]', rows[1]['key'])
        self.assertEqual('\u00e9', rows[2]['value'])
        self.assertEqual({'total_rows': 3, 'offset': 0, 'rows': []}, parser.header)

    def test_single_character_chunks(self):
        parser = StreamRowParser()
        rows = parse_all(parser, VIEW_BODY)
        self.assertEqual(['a', 'b}', 'c'], [row['id'] for row in rows])
        self.assertEqual({'total_rows': 3, 'offset': 0, 'rows': []}, parser.header)

    def test_rows_yielded_as_completed(self):
        parser = StreamRowParser()
        self.assertEqual([], list(parser.parse('{"total_rows":2,"rows":[{"id":"a"')))
        self.assertEqual([{'id': 'a'}], list(parser.parse('},{"id":')))
        self.assertEqual([{'id': 'b'}], list(parser.parse('"b"}]}')))

    def test_split_multibyte_character(self):
        data = '{"rows":[{"id":"\u00e9\u4e2d"}]}'.encode('utf-8')
        parser = StreamRowParser()
        rows = parse_all(parser, [data[i:i + 1] for i in range(len(data))])
        self.assertEqual([{'id': '\u00e9\u4e2d'}], rows)

    def test_header_after_rows(self):
        body = '{"results":[{"seq":1,"id":"a"},{"seq":2,"id":"b"}],"last_seq":2,"pending":0}'
        parser = StreamRowParser()
        rows = parse_all(parser, [body])
        self.assertEqual([1, 2], [row['seq'] for row in rows])
        self.assertEqual({'results': [], 'last_seq': 2, 'pending': 0}, parser.header)

    def test_other_arrays_not_treated_as_rows(self):
        parser = StreamRowParser()
        rows = parse_all(parser, ['{"errors":[{"id":"a"}],"rows":[]}'])
        self.assertEqual([], rows)
        self.assertEqual({'errors': [{'id': 'a'}], 'rows': []}, parser.header)

    def test_rows_key_in_value_ignored(self):
        parser = StreamRowParser()
        rows = parse_all(parser, ['{"name":"rows","tags":[{"id":"a"}]}'])
        self.assertEqual([], rows)

    def test_non_object_rows(self):
        body = '{"total_rows":5,"rows":["a]b", ["c", [1, "]"]], 3 ,null,-1.5e2],"offset":0}'
        parser = StreamRowParser()
        rows = parse_all(parser, [body])
        self.assertEqual(['a]b', ['c', [1, ']']], 3, None, -150.0], rows)
        self.assertEqual({'total_rows': 5, 'rows': [], 'offset': 0}, parser.header)

    def test_non_object_rows_single_character_chunks(self):
        body = '{"rows":["a]b",["c",1],3,"x\\",y"]}'
        parser = StreamRowParser()
        rows = parse_all(parser, body)
        self.assertEqual(['a]b', ['c', 1], 3, 'x",y'], rows)
        self.assertEqual({'rows': []}, parser.header)

    def test_scalar_row_yielded_at_separator(self):
        parser = StreamRowParser()
        self.assertEqual([], list(parser.parse('{"rows":[12')))
        self.assertEqual([123], list(parser.parse('3,')))
        self.assertEqual(['x'], list(parser.parse('"x"]}')))
        self.assertEqual({'rows': []}, parser.header)

    def test_parser_options(self):
        parser = StreamRowParser(parse_float=Decimal)
        rows = parse_all(parser, ['{"rows":[{"value":1.5}],"offset":0.5}'])
        self.assertEqual(Decimal('1.5'), rows[0]['value'])
        self.assertEqual(Decimal('0.5'), parser.header['offset'])

    def test_no_header_before_parsing(self):
        self.assertIsNone(StreamRowParser().header)


class FeedModeTest(TestCase):
    def test_lines(self):
        parser = StreamRowParser('feed')
        body = '{"seq":1,"id":"a"}\n\n{"seq":2,"id":"b"}\n{"last_seq":2}'
        rows = parse_all(parser, [body[:10], body[10:25], body[25:]])
        self.assertEqual([{'seq': 1, 'id': 'a'}, {'seq': 2, 'id': 'b'}, {'last_seq': 2}], rows)
        self.assertIsNone(parser.header)

    def test_heartbeat_lines_skipped(self):
        parser = StreamRowParser('feed')
        self.assertEqual([], list(parser.parse(b'\n\n\n')))
        self.assertEqual([{'seq': 1}], list(parser.parse(b'{"seq":1}\r\n')))

    def test_finish_only_yields_once(self):
        parser = StreamRowParser('feed')
        self.assertEqual([], list(parser.parse('{"seq":1}')))
        self.assertEqual([{'seq': 1}], list(parser.finish()))
        self.assertEqual([], list(parser.finish()))


class ModeTest(TestCase):
    def test_invalid_mode(self):
        with self.assertRaisesRegex(ValueError, 'Invalid mode'):
            StreamRowParser('continuous')


if __name__ == '__main__':
    main(verbosity=2)
