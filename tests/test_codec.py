import io
import tempfile
import unittest
from pathlib import Path

from trailgpx.bounds import Bounds
from trailgpx.codec import encode, format_number, new_document, parse, parse_bytes, parse_path, parse_stream, to_xml
from trailgpx.errors import GPXDecodeError, GPXEncodeError, GPXReadError
from trailgpx.model import (
    GPX_CREATOR,
    GPX_NAMESPACE,
    GPX_SCHEMA_LOCATION,
    XSI_NAMESPACE,
    Copyright,
    Document,
    Email,
    Extensions,
    Link,
    Metadata,
    Person,
    Route,
    Track,
    TrackSegment,
    Waypoint,
)

DATA_DIR = Path(__file__).parent / "data"

MINIMAL_GPX = b"""<?xml version="1.0" encoding="UTF-8" standalone="no" ?>
<gpx xmlns="http://www.topografix.com/GPX/1/1" creator="Oregon 400t" version="1.1">
  <metadata>
    <link href="http://www.garmin.com">
      <text>Garmin International</text>
    </link>
    <time>2009-10-17T22:58:43Z</time>
  </metadata>
  <trk>
    <name>Example GPX Document</name>
    <trkseg>
      <trkpt lat="47.644548" lon="-122.326897">
        <ele>4.46</ele>
        <time>2009-10-17T18:37:26Z</time>
      </trkpt>
      <trkpt lat="47.644548" lon="-122.326897">
        <ele>4.94</ele>
        <time>2009-10-17T18:37:31Z</time>
      </trkpt>
      <trkpt lat="47.644548" lon="-122.326897">
        <ele>6.87</ele>
        <time>2009-10-17T18:37:34Z</time>
      </trkpt>
    </trkseg>
  </trk>
</gpx>"""


def _full_document():
    """Every optional field set to a non-zero value."""
    point_fields = dict(
        elevation=1234.5,
        time="2024-05-01T10:00:00Z",
        magnetic_variation=12.5,
        geoid_height=-20.1,
        name="Summit",
        comment="Windy",
        description='Fish & "Chips" <b>',
        source="GPS",
        links=[Link(href="https://example.com/p", text="Photo", type="image/jpeg")],
        symbol="Summit",
        type="peak",
        type_of_gps_fix="3d",
        satellites=8,
        horizontal_dilution=0.9,
        vertical_dilution=1.1,
        position_dilution=1.4,
        age_of_dgps_data=1.5,
        dgps_id=12,
        extensions=Extensions(content="<speed>4.2</speed>"),
    )
    return Document(
        metadata=Metadata(
            name="Trip",
            description="Alps",
            author=Person(
                name="Jo",
                email=Email(id="jo", domain="example.com"),
                link=Link(href="https://example.com/jo", text="Jo"),
            ),
            copyright=Copyright(author="Jo", year="2024", license="CC-BY"),
            links=[Link(href="https://example.com"), Link(href="https://example.org")],
            time="2024-05-01T09:00:00Z",
            keywords="alps, hike",
            bounds=Bounds(min_latitude=46.1, max_latitude=46.9, min_longitude=7.1, max_longitude=7.9),
            extensions=Extensions(content="<note>meta</note>"),
        ),
        waypoints=[Waypoint(latitude=46.5, longitude=7.5, **point_fields)],
        routes=[
            Route(
                name="Plan",
                comment="c",
                description="d",
                source="s",
                links=[Link(href="https://example.com/r")],
                number=3,
                type="hike",
                extensions=Extensions(content="<color>red</color>"),
                points=[
                    Waypoint(latitude=46.1, longitude=7.1, elevation=800.0),
                    Waypoint(latitude=46.2, longitude=7.3, elevation=0.1 + 0.2),
                ],
            )
        ],
        tracks=[
            Track(
                name="Day 1",
                number=1,
                extensions=Extensions(content="<color>blue</color>"),
                segments=[
                    TrackSegment(
                        points=[
                            Waypoint(latitude=46.11, longitude=7.11, elevation=810.25),
                            Waypoint(latitude=46.12, longitude=7.12, **point_fields),
                        ],
                        extensions=Extensions(content="<seg>1</seg>"),
                    ),
                    TrackSegment(points=[Waypoint(latitude=-0.5, longitude=-179.5)]),
                ],
            )
        ],
        extensions=Extensions(content="<root>x</root>"),
    )


class DecodeTests(unittest.TestCase):
    def test_minimal_document(self):
        document = parse_bytes(MINIMAL_GPX)

        self.assertEqual(len(document.tracks), 1)
        self.assertEqual(len(document.tracks[0].segments[0].points), 3)
        self.assertEqual(document.elevation_extremes(), (4.46, 6.87))
        self.assertEqual(document.metadata.links[0].href, "http://www.garmin.com")
        self.assertEqual(document.metadata.links[0].text, "Garmin International")
        self.assertEqual(document.metadata.time, "2009-10-17T22:58:43Z")
        self.assertEqual(document.tracks[0].name, "Example GPX Document")
        self.assertEqual(document.creator, "Oregon 400t")
        self.assertEqual(document.xmlns_xsi, XSI_NAMESPACE)
        self.assertEqual(document.schema_location, GPX_SCHEMA_LOCATION)

    def test_path_fixture(self):
        document = parse_path(DATA_DIR / "lakeside.gpx")

        metadata = document.metadata
        self.assertEqual(metadata.name, "Lakeside loop")
        self.assertEqual(metadata.author.name, "Jo Rider")
        self.assertEqual(metadata.author.email, Email(id="jo", domain="example.com"))
        self.assertEqual(metadata.author.link.text, "Profile")
        self.assertEqual(metadata.copyright, Copyright(author="Jo Rider", year="2024", license="https://creativecommons.org/licenses/by/4.0/"))
        self.assertEqual(metadata.links[0].type, "text/html")
        self.assertEqual(metadata.keywords, "lake, loop")
        self.assertEqual(
            metadata.bounds,
            Bounds(min_latitude=47.6, max_latitude=47.7, min_longitude=-122.4, max_longitude=-122.3),
        )

        self.assertEqual(len(document.waypoints), 2)
        start = document.waypoints[0]
        self.assertEqual((start.latitude, start.longitude), (47.644548, -122.326897))
        self.assertEqual(start.elevation, 4.46)
        self.assertEqual(start.symbol, "Flag, Blue")
        self.assertEqual(start.satellites, 7)
        self.assertEqual(start.horizontal_dilution, 1.2)
        self.assertIsNone(start.time)
        self.assertEqual(document.waypoints[1].name, "Cafe & bakery")

        route = document.routes[0]
        self.assertEqual(route.number, 1)
        self.assertEqual([point.elevation for point in route.points], [100.0, 150.0, 120.0])

        track = document.tracks[0]
        self.assertEqual(len(track.segments), 2)
        self.assertEqual(track.elevation_extremes(), (-2.5, 10.0))
        self.assertEqual(
            document.namespaces,
            {"gpxtpx": "http://www.garmin.com/xmlschemas/TrackPointExtension/v1"},
        )

    def test_extensions_are_kept_as_text(self):
        document = parse_path(DATA_DIR / "lakeside.gpx")
        extensions = document.tracks[0].segments[0].points[0].extensions

        self.assertIn("<gpxtpx:hr>120</gpxtpx:hr>", extensions.content)
        self.assertNotIn("xmlns", extensions.content)
        self.assertIsNone(document.tracks[0].segments[0].points[1].extensions)

    def test_charset_from_declaration(self):
        document = parse_path(DATA_DIR / "latin1.gpx")
        self.assertEqual(document.waypoints[0].name, "Zürich Hauptbahnhof")
        self.assertEqual(document.creator, "legacy")

    def test_stream_string_and_dispatch(self):
        from_stream = parse_stream(io.BytesIO(MINIMAL_GPX))
        from_text = parse(MINIMAL_GPX.decode("utf-8"))
        from_path = parse(DATA_DIR / "lakeside.gpx")
        with open(DATA_DIR / "lakeside.gpx", "rb") as handle:
            from_handle = parse(handle)

        self.assertEqual(from_stream, parse_bytes(MINIMAL_GPX))
        self.assertEqual(from_text, from_stream)
        self.assertEqual(from_path, from_handle)
        with self.assertRaises(TypeError):
            parse(42)

    def test_namespaced_attributes_are_not_fields(self):
        document = parse_bytes(
            b'<gpx xmlns="http://www.topografix.com/GPX/1/1"'
            b' xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">'
            b'<wpt lat="1" lon="2" xsi:type="wptType"><type>hut</type></wpt></gpx>'
        )
        self.assertEqual(document.waypoints[0].type, "hut")
        self.assertEqual(document.waypoints[0].latitude, 1.0)

    def test_document_without_namespace(self):
        document = parse_bytes(b'<gpx version="1.1"><wpt lat="1" lon="2"><ele>3</ele></wpt></gpx>')
        self.assertEqual(document.waypoints[0].elevation, 3.0)
        self.assertEqual(document.xmlns, GPX_NAMESPACE)

    def test_empty_numeric_element_is_absent(self):
        document = parse_bytes(b'<gpx><wpt lat="1" lon="2"><ele> </ele><sat></sat></wpt></gpx>')
        self.assertIsNone(document.waypoints[0].elevation)
        self.assertIsNone(document.waypoints[0].satellites)


class DecodeFailureTests(unittest.TestCase):
    def assertDecodeFails(self, content):
        with self.assertRaises(GPXDecodeError):
            parse_bytes(content)

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(GPXReadError):
                parse_path(Path(tmp) / "missing.gpx")

    def test_invalid_xml(self):
        self.assertDecodeFails(b"<gpx><trk></gpx>")
        self.assertDecodeFails(b"")

    def test_wrong_root(self):
        self.assertDecodeFails(b"<kml><Document/></kml>")

    def test_missing_coordinates(self):
        self.assertDecodeFails(b'<gpx><wpt lat="1"><ele>3</ele></wpt></gpx>')

    def test_attribute_where_element_expected(self):
        self.assertDecodeFails(b'<gpx><wpt lat="1" lon="2" ele="3"/></gpx>')

    def test_element_where_text_expected(self):
        self.assertDecodeFails(b'<gpx><wpt lat="1" lon="2"><name><b>x</b></name></wpt></gpx>')

    def test_non_numeric_values(self):
        self.assertDecodeFails(b'<gpx><wpt lat="1" lon="2"><ele>high</ele></wpt></gpx>')
        self.assertDecodeFails(b'<gpx><wpt lat="north" lon="2"/></gpx>')
        self.assertDecodeFails(b'<gpx><trk><number>one</number></trk></gpx>')


class EncodeTests(unittest.TestCase):
    def test_new_document_with_waypoints_and_track(self):
        document = new_document()
        document.tracks.append(
            Track(
                segments=[
                    TrackSegment(
                        points=[
                            Waypoint(latitude=32.1234, longitude=121.1233, elevation=1233),
                            Waypoint(latitude=32.1235, longitude=121.1234, elevation=1234),
                            Waypoint(latitude=32.1236, longitude=121.1235, elevation=1235),
                        ]
                    )
                ]
            )
        )
        document.waypoints.extend(
            [
                Waypoint(latitude=1.1111, longitude=9.9999, elevation=1111.0),
                Waypoint(latitude=2.2222, longitude=8.8888, elevation=2222.0),
                Waypoint(latitude=3.3333, longitude=7.7777, elevation=3333.0),
            ]
        )

        expected = f"""<gpx xmlns="http://www.topografix.com/GPX/1/1" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance" xsi:schemaLocation="http://www.topografix.com/GPX/1/1 http://www.topografix.com/GPX/1/1/gpx.xsd" version="1.1" creator="{GPX_CREATOR}">
  <wpt lat="1.1111" lon="9.9999">
    <ele>1111</ele>
  </wpt>
  <wpt lat="2.2222" lon="8.8888">
    <ele>2222</ele>
  </wpt>
  <wpt lat="3.3333" lon="7.7777">
    <ele>3333</ele>
  </wpt>
  <trk>
    <trkseg>
      <trkpt lat="32.1234" lon="121.1233">
        <ele>1233</ele>
      </trkpt>
      <trkpt lat="32.1235" lon="121.1234">
        <ele>1234</ele>
      </trkpt>
      <trkpt lat="32.1236" lon="121.1235">
        <ele>1235</ele>
      </trkpt>
    </trkseg>
  </trk>
</gpx>"""
        self.assertEqual(to_xml(document), expected)
        self.assertEqual(
            encode(document),
            ('<?xml version="1.0" encoding="UTF-8"?>\n' + expected).encode("utf-8"),
        )
        self.assertEqual(document.to_xml(), encode(document))

    def test_new_document_constants(self):
        document = new_document()
        self.assertEqual(document.xmlns, GPX_NAMESPACE)
        self.assertEqual(document.xmlns_xsi, XSI_NAMESPACE)
        self.assertEqual(document.schema_location, GPX_SCHEMA_LOCATION)
        self.assertEqual(document.version, "1.1")
        self.assertEqual(document.creator, GPX_CREATOR)
        self.assertEqual((document.waypoints, document.routes, document.tracks), ([], [], []))
        self.assertIsNone(document.metadata)

    def test_zero_and_empty_values_are_omitted(self):
        document = Document(
            waypoints=[Waypoint(latitude=0.0, longitude=2.0, elevation=0.0, name="", satellites=0)],
            tracks=[Track(name="", segments=[TrackSegment()])],
        )
        body = to_xml(document)
        self.assertIn('  <wpt lat="0" lon="2"></wpt>\n', body)
        self.assertIn("  <trk>\n    <trkseg></trkseg>\n  </trk>\n", body)
        self.assertNotIn("<name>", body)

    def test_metadata_shape(self):
        document = Document(
            metadata=Metadata(
                name="Trip",
                author=Person(name="Jo", email=Email(id="jo", domain="example.com")),
                copyright=Copyright(author="Jo"),
                links=[Link(href="https://example.com")],
                bounds=Bounds(min_latitude=1.5, max_latitude=2.5, min_longitude=-3.0, max_longitude=4.0),
            )
        )
        expected = """  <metadata>
    <name>Trip</name>
    <author>
      <name>Jo</name>
      <email id="jo" domain="example.com"></email>
    </author>
    <copyright author="Jo"></copyright>
    <link href="https://example.com"></link>
    <bounds minlat="1.5" minlon="-3" maxlat="2.5" maxlon="4"></bounds>
  </metadata>"""
        self.assertIn(expected, to_xml(document))

    def test_text_is_escaped(self):
        document = Document(waypoints=[Waypoint(latitude=1.0, longitude=2.0, name='Fish & "Chips" <b>')])
        self.assertIn("<name>Fish &amp; \"Chips\" &lt;b&gt;</name>", to_xml(document))

    def test_extra_namespaces_are_declared(self):
        document = parse_path(DATA_DIR / "lakeside.gpx")
        self.assertIn(
            'xmlns:gpxtpx="http://www.garmin.com/xmlschemas/TrackPointExtension/v1"',
            to_xml(document).splitlines()[0],
        )

    def test_control_characters_are_rejected(self):
        documents = [
            Document(waypoints=[Waypoint(latitude=1.0, longitude=2.0, name="a\x01b")]),
            Document(metadata=Metadata(links=[Link(href="https://example.com/\x0b")])),
            Document(extensions=Extensions(content="<note>\x1f</note>")),
        ]
        for document in documents:
            with self.subTest(document=document):
                with self.assertRaises(GPXEncodeError):
                    encode(document)

    def test_tabs_newlines_and_non_ascii_are_written(self):
        document = Document(
            waypoints=[Waypoint(latitude=1.0, longitude=2.0, name="Zürich\tHbf\nGleis 3 \U0001F686")]
        )
        self.assertEqual(parse_bytes(encode(document)), document)

    def test_format_number(self):
        self.assertEqual(format_number(1111.0), "1111")
        self.assertEqual(format_number(-122.326897), "-122.326897")
        self.assertEqual(format_number(0.1 + 0.2), "0.30000000000000004")
        self.assertEqual(format_number(7), "7")


class RoundTripTests(unittest.TestCase):
    def test_every_field_survives(self):
        document = _full_document()
        self.assertEqual(parse_bytes(encode(document)), document)

    def test_fixture_survives_reencoding(self):
        document = parse_path(DATA_DIR / "lakeside.gpx")
        again = parse_bytes(encode(document))
        self.assertEqual(again, document)
        self.assertEqual(encode(again), encode(document))

    def test_encoding_is_stable(self):
        document = _full_document()
        self.assertEqual(encode(parse_bytes(encode(document))), encode(document))


if __name__ == "__main__":
    unittest.main()
