"""
Test the regiontree command line entrypoint.
"""
import json

import h3.api.basic_int as h3

from regiontree.cli import build_parser, main

from conftest import BOSTON, PROVIDENCE, SPRINGFIELD, WORCESTER


def test_generate_then_lookup(tmp_path, write_set, capsys):
    a = write_set("alpha.h3idz", [BOSTON, WORCESTER])
    b = write_set("beta.h3idz", [WORCESTER, SPRINGFIELD])
    out = tmp_path / "regions.bin"

    assert main(["generate", str(out), str(a), str(b)]) == 0
    capsys.readouterr()

    assert main(["lookup", str(out), h3.int_to_str(WORCESTER)]) == 0
    assert capsys.readouterr().out.strip() == "beta"


def test_lookup_no_entry_is_not_an_error(tmp_path, write_set, capsys):
    out = tmp_path / "regions.bin"
    main(["generate", str(out), str(write_set("alpha.h3idz", [BOSTON]))])
    capsys.readouterr()

    assert main(["lookup", str(out), h3.int_to_str(PROVIDENCE)]) == 0
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "no entry" in captured.err


def test_lookup_bad_index(tmp_path, write_set, capsys):
    out = tmp_path / "regions.bin"
    main(["generate", str(out), str(write_set("alpha.h3idz", [BOSTON]))])
    capsys.readouterr()

    assert main(["lookup", str(out), "zz-not-hex"]) == 1
    assert "[error]" in capsys.readouterr().err


def test_lookup_missing_map(tmp_path, capsys):
    assert main(["lookup", str(tmp_path / "nope.bin"), h3.int_to_str(BOSTON)]) == 1
    assert "[error]" in capsys.readouterr().err


def test_gen_world(tmp_path, write_geojson, overlapping_squares, capsys):
    out = tmp_path / "world.bin"
    src = write_geojson(overlapping_squares)
    assert main(["gen-world", "--resolution", "7", "--workers", "2", str(out), str(src)]) == 0
    capsys.readouterr()

    cell = h3.latlng_to_cell(42.4, -71.15, 9)
    assert main(["lookup", str(out), h3.int_to_str(cell)]) == 0
    assert json.loads(capsys.readouterr().out) == {"id": 1, "name": "west"}


def test_info_lists_labels(tmp_path, write_set, capsys):
    out = tmp_path / "regions.bin"
    main(["generate", str(out), str(write_set("beta.h3idz", [BOSTON])), str(write_set("alpha.h3idz", [SPRINGFIELD]))])
    capsys.readouterr()

    assert main(["info", str(out)]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert "2 records" in lines[0]
    assert lines[1].split() == ["0", "alpha"]
    assert lines[2].split() == ["1", "beta"]


def test_generate_capacity_error(tmp_path, write_set, capsys):
    cells = sorted(h3.get_res0_cells())
    sets = []
    for i in range(257):
        sets.append(str(write_set(f"r{i:03d}.h3idz", [cells[i % len(cells)]])))
    out = tmp_path / "regions.bin"
    assert main(["generate", str(out)] + sets) == 1
    assert "[error]" in capsys.readouterr().err
    assert not out.exists()


def test_gen_world_default_resolution():
    args = build_parser().parse_args(["gen-world", "out.bin", "world.geojson"])
    assert args.resolution == 7
