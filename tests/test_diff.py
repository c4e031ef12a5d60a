from reviewbot.diff import hunk_ranges, line_in_patch, map_added_lines


def test_added_lines_are_numbered_from_the_hunk_header():
    patch = "@@ -10,3 +20,4 @@\n+ a\n b\n+ c\n- d\n+ e"
    assert list(map_added_lines(patch)) == [(20, "a"), (22, "c"), (23, "e")]


def test_counter_resets_at_every_hunk():
    patch = "@@ -1,2 +1,3 @@\n ctx\n+new\n ctx\n@@ -40,1 +50,2 @@\n+later\n ctx"
    assert list(map_added_lines(patch)) == [(2, "new"), (50, "later")]


def test_file_headers_and_no_newline_markers_are_ignored():
    patch = (
        "diff --git a/x.py b/x.py\n"
        "--- a/x.py\n"
        "+++ b/x.py\n"
        "@@ -1 +1 @@\n"
        "-old\n"
        "\\ No newline at end of file\n"
        "+new\n"
        "\\ No newline at end of file"
    )
    assert list(map_added_lines(patch)) == [(1, "new")]


def test_patch_without_hunks_yields_nothing():
    assert list(map_added_lines("Binary files a/logo.png and b/logo.png differ")) == []
    assert list(map_added_lines("")) == []


def test_blank_added_lines_are_yielded():
    assert list(map_added_lines("@@ -0,0 +1,2 @@\n+\n+x")) == [(1, ""), (2, "x")]


def test_mapping_is_restartable():
    patch = "@@ -1,1 +1,2 @@\n ctx\n+added"
    assert list(map_added_lines(patch)) == list(map_added_lines(patch)) == [(2, "added")]


def test_hunk_ranges_cover_head_side_lines():
    patch = "@@ -10,3 +20,4 @@\n+ a\n@@ -1 +5 @@\n+b"
    assert hunk_ranges(patch) == [range(20, 24), range(5, 6)]
    assert line_in_patch(patch, 23)
    assert line_in_patch(patch, 5)
    assert not line_in_patch(patch, 24)
    assert not line_in_patch(patch, 1)


def test_added_lines_starting_with_plus_signs_keep_the_count():
    assert list(map_added_lines("@@ -0,0 +1,2 @@\n+++i;\n+x = 1;")) == [(1, "++i;"), (2, "x = 1;")]

    front_matter = "@@ -0,0 +1,4 @@\n++++\n+title = 'x'\n++++\n+body"
    assert [number for number, _ in map_added_lines(front_matter)] == [1, 2, 3, 4]
