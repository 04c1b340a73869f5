from __future__ import annotations

from mentor_sync.infrastructure.external.sheets_sync.types import (
    ColumnAccessor,
    ColumnSpec,
    HeaderIndex,
    build_rows,
)


def test_header_index_exact_then_trailing_punctuation_then_prefix() -> None:
    index = HeaderIndex(["Timestamp", "Nama Penuh Usahawan.", "Email Address\n(sila isi)"])

    assert index.find(["Timestamp"]) == 0
    assert index.find(["Nama Penuh Usahawan"]) == 1
    assert index.find(["Email Address"]) == 2
    assert index.find(["No existe"]) is None


def test_header_index_prefers_longest_prefix() -> None:
    index = HeaderIndex(
        [
            "Ulasan Mentor (Jumlah Pendapatan) sila terangkan",
            "Ulasan Mentor (Peluang Pekerjaan) sila terangkan",
        ]
    )
    assert index.find(["Ulasan Mentor", "Ulasan Mentor (Peluang"]) == 1


def test_header_index_duplicate_headers_first_wins() -> None:
    index = HeaderIndex(["Email", "Nama", "Email"])
    assert index.find(["Email"]) == 0


def test_build_rows_keeps_positions_and_pads_short_rows() -> None:
    rows = build_rows([["A", "B"], ["1"], [], ["x", "y"]])

    assert [r.position for r in rows] == [2, 3, 4]
    assert rows[0].cells == ("1", "")
    assert rows[0].get("B") == ""
    assert rows[1].is_blank()
    assert rows[2].as_dict() == {"A": "x", "B": "y"}


def test_build_rows_empty_values() -> None:
    assert build_rows([]) == []
    assert build_rows([["A", "B"]]) == []


def test_column_accessor_uses_expected_position_when_header_matches() -> None:
    rows = build_rows([["Timestamp", "Emai"], ["t", "mentor@x.com"]])
    spec = ColumnSpec("Emai", 1, ("Email",))

    accessor = ColumnAccessor(rows[0])
    assert accessor.locate(spec) == 1
    assert accessor.text(spec) == "mentor@x.com"


def test_column_accessor_falls_back_to_alias_when_column_moved() -> None:
    rows = build_rows([["Timestamp", "Status", "Email"], ["t", "Selesai", " mentor@x.com "]])
    spec = ColumnSpec("Emai", 1, ("Email",))

    accessor = ColumnAccessor(rows[0])
    assert accessor.locate(spec) == 2
    assert accessor.raw(spec) == "mentor@x.com"


def test_column_accessor_missing_column_is_empty() -> None:
    rows = build_rows([["Timestamp"], ["t"]])
    accessor = ColumnAccessor(rows[0])

    assert accessor.raw(ColumnSpec("DOC_URL", 53)) == ""
    assert accessor.text(ColumnSpec("DOC_URL", 53)) is None


def test_column_accessor_prefixed_columns() -> None:
    rows = build_rows([["Nama", "GW_Skor_1", "GW_Skor_2"], ["Siti", "7", " 8 "]])
    accessor = ColumnAccessor(rows[0])

    assert accessor.prefixed("GW_Skor") == [("GW_Skor_1", "7"), ("GW_Skor_2", "8")]
