#!/usr/bin/env python3
"""
Tests for tweeweave/save_passages.py

Tests rewriting title lines back into files: round trips, idempotency,
canonical title lines after edits, and stale anchor detection.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from tweeweave.errors import StaleAnchorError
from tweeweave.models import Passage
from tweeweave.parse_passages import parse_passages
from tweeweave.save_passages import (
    EXIT_STALE,
    EXIT_SUCCESS,
    find_line,
    is_changed,
    main,
    mark_changed,
    render_title_line,
    rewrite_title_lines,
    save_passages,
)

STORY_TWEE = """:: Start {"position":"10,20","size":"100,150"}
Go to [[Next]].

:: Next [x tag y] {"position":"200,20"}
The end.
"""

MESSY_TWEE = """Notes before the story
::Start
Text with :: inside and [[Next]]

:: Next [a b]   {"zoom":2}
::   Odd   spacing
:: Broken {"position":
:: Start
Duplicate title line above, untouched while unchanged
"""


class MemoryFiles:
    """In-memory read/write functions that count calls."""

    def __init__(self, files):
        self.files = {Path(k): v for k, v in files.items()}
        self.reads = []
        self.writes = []

    def read(self, path):
        self.reads.append(path)
        return self.files[path]

    def write(self, path, text):
        self.writes.append(path)
        self.files[path] = text


class TestRoundTrip:
    """Unchanged passages must leave files byte-identical."""

    @pytest.mark.parametrize('text', [STORY_TWEE, MESSY_TWEE, ':: Only\n', ':: A\r\nB\r\n'])
    def test_rewrite_unchanged(self, text):
        passages = parse_passages(text, 'story.twee')
        assert rewrite_title_lines(text, passages) == text

    def test_save_unchanged_writes_nothing(self):
        files = MemoryFiles({'story.twee': MESSY_TWEE})
        passages = parse_passages(MESSY_TWEE, 'story.twee')

        assert save_passages(passages, read=files.read, write=files.write) == []
        assert files.writes == []
        assert files.files[Path('story.twee')] == MESSY_TWEE


class TestRenderTitleLine:
    """Tests for render_title_line()."""

    def test_canonical_form(self):
        passage = parse_passages(STORY_TWEE, 'story.twee')[0]
        assert render_title_line(passage) == ':: Start {"position":"10,20","size":"100,150"}'

    def test_tags(self):
        passage = parse_passages(STORY_TWEE, 'story.twee')[1]
        assert passage.tags == ['tag']
        assert render_title_line(passage) == ':: Next [tag] {"position":"200,20","size":"100,100"}'

    def test_no_metadata(self):
        passage = Passage(title_line=':: Plain', title='Plain')
        assert render_title_line(passage) == ':: Plain {"position":"0,0","size":"100,100"}'


class TestRewriteTitleLines:
    """Tests for rewrite_title_lines()."""

    def test_moved_passage(self):
        """Test that only the moved passage's title line changes."""
        passages = parse_passages(STORY_TWEE, 'story.twee')
        start = passages[0]
        start.position.x = 50.4

        result = rewrite_title_lines(STORY_TWEE, passages)

        assert result == STORY_TWEE.replace(
            ':: Start {"position":"10,20","size":"100,150"}',
            ':: Start {"position":"50,20","size":"100,150"}',
        )
        assert start.title_line == ':: Start {"position":"50,20","size":"100,150"}'
        assert start.meta.position == '50,20'

    def test_unchanged_passage_left_alone(self):
        """Test the untouched passage keeps its non-canonical line."""
        passages = parse_passages(STORY_TWEE, 'story.twee')
        passages[0].size.width = 300

        result = rewrite_title_lines(STORY_TWEE, passages)

        assert ':: Next [x tag y] {"position":"200,20"}\n' in result
        assert passages[1].title_line == ':: Next [x tag y] {"position":"200,20"}'

    def test_new_tag(self):
        passages = parse_passages(STORY_TWEE, 'story.twee')
        passages[1].tags.append('new')

        result = rewrite_title_lines(STORY_TWEE, passages)
        assert ':: Next [tag new] {"position":"200,20","size":"100,100"}\n' in result

    def test_renamed_passage(self):
        passages = parse_passages(STORY_TWEE, 'story.twee')
        passages[0].title = 'Begin'

        result = rewrite_title_lines(STORY_TWEE, passages)
        assert result.startswith(':: Begin {"position":"10,20","size":"100,150"}\nGo to [[Next]].\n')

    def test_extension_keys_preserved(self):
        text = ':: A {"zoom":2,"position":"1,1"}\nBody\n'
        passages = parse_passages(text, 'a.twee')
        passages[0].position.x = 5

        result = rewrite_title_lines(text, passages)
        assert result == ':: A {"zoom":2,"position":"5,1","size":"100,100"}\nBody\n'

    def test_body_text_never_matched(self):
        """Test that a copy of the title line inside body text isn't replaced."""
        text = 'see :: A\n:: A\nsee :: A here\n'
        passages = parse_passages(text, 'a.twee')
        passages[0].position.y = 7

        result = rewrite_title_lines(text, passages)
        assert result == 'see :: A\n:: A {"position":"0,7","size":"100,100"}\nsee :: A here\n'

    def test_crlf_preserved(self):
        text = ':: A\r\nBody\r\n'
        passages = parse_passages(text, 'a.twee')
        passages[0].position.x = 5

        result = rewrite_title_lines(text, passages)
        assert result == ':: A {"position":"5,0","size":"100,100"}\r\nBody\r\n'
        assert passages[0].title_line == ':: A {"position":"5,0","size":"100,100"}\r'

    def test_mark_changed_normalizes(self):
        text = '::Plain\nBody\n'
        passages = parse_passages(text, 'a.twee')
        assert not is_changed(passages[0])

        mark_changed(passages[0])
        assert is_changed(passages[0])
        result = rewrite_title_lines(text, passages)
        assert result == ':: Plain {"position":"0,0","size":"100,100"}\nBody\n'

    def test_stale_anchor_missing(self):
        """Test a title line edited on disk is reported, not silently skipped."""
        passages = parse_passages(STORY_TWEE, 'story.twee')
        passages[0].position.x = 99
        external = STORY_TWEE.replace(':: Start', ':: Beginning')

        with pytest.raises(StaleAnchorError) as excinfo:
            rewrite_title_lines(external, passages)

        assert excinfo.value.matches == 0
        assert excinfo.value.path == Path('story.twee')
        assert passages[0].title_line == ':: Start {"position":"10,20","size":"100,150"}'

    def test_stale_anchor_ambiguous(self):
        """Test duplicate identical title lines are reported."""
        text = ':: Dup\nA\n:: Dup\nB\n'
        passages = parse_passages(text, 'dup.twee')
        passages[0].position.x = 10

        with pytest.raises(StaleAnchorError) as excinfo:
            rewrite_title_lines(text, passages)
        assert excinfo.value.matches == 2

    def test_stale_anchor_leaves_earlier_passages_untouched(self):
        """Test no passage state changes when a later passage fails."""
        passages = parse_passages(STORY_TWEE, 'story.twee')
        passages[0].position.x = 1
        passages[1].position.x = 2
        external = STORY_TWEE.replace(':: Next', ':: Renamed')

        with pytest.raises(StaleAnchorError):
            rewrite_title_lines(external, passages)
        assert passages[0].title_line == ':: Start {"position":"10,20","size":"100,150"}'
        assert passages[0].meta.position == '10,20'


class TestSavePassages:
    """Tests for save_passages()."""

    def test_idempotent(self, tmp_path):
        """Test saving twice gives the same file and a stable title line."""
        story_file = tmp_path / 'story.twee'
        story_file.write_text(STORY_TWEE, encoding='utf-8')
        passages = parse_passages(STORY_TWEE, story_file)
        passages[0].position.x = 42

        assert save_passages(passages) == [story_file]
        first = story_file.read_text(encoding='utf-8')
        title_line = passages[0].title_line

        assert save_passages(passages) == []
        assert story_file.read_text(encoding='utf-8') == first
        assert passages[0].title_line == title_line
        assert ':: Start {"position":"42,20","size":"100,150"}' in first

    def test_one_read_and_write_per_file(self):
        files = MemoryFiles({'one.twee': STORY_TWEE, 'two.twee': ':: Other\nText\n'})
        one = parse_passages(STORY_TWEE, 'one.twee')
        two = parse_passages(':: Other\nText\n', 'two.twee')
        for passage in one + two:
            passage.position.x = 5

        written = save_passages(two + one[::-1], read=files.read, write=files.write)

        assert written == [Path('two.twee'), Path('one.twee')]
        assert files.reads == [Path('two.twee'), Path('one.twee')]
        assert files.writes == [Path('two.twee'), Path('one.twee')]
        assert files.files[Path('two.twee')] == ':: Other {"position":"5,0","size":"100,100"}\nText\n'

    def test_swapped_titles(self):
        """Test B taking A's old title line while A is renamed."""
        text = (
            ':: A {"position":"0,0","size":"100,100"}\n'
            ':: B {"position":"0,0","size":"100,100"}\n'
        )
        files = MemoryFiles({'ab.twee': text})
        a, b = parse_passages(text, 'ab.twee')
        a.title = 'C'
        b.title = 'A'

        save_passages([b, a], read=files.read, write=files.write)
        assert files.files[Path('ab.twee')] == (
            ':: C {"position":"0,0","size":"100,100"}\n'
            ':: A {"position":"0,0","size":"100,100"}\n'
        )

    def test_new_line_repeats_later_passage_line(self):
        """Test a rename onto a later passage's recorded line still saves."""
        text = (
            ':: A {"position":"0,0","size":"100,100"}\n'
            ':: B {"position":"0,0","size":"100,100"}\n'
        )
        files = MemoryFiles({'x.twee': text})
        a, b = parse_passages(text, 'x.twee')
        a.title = 'B'
        b.position.x = 10

        assert save_passages([a, b], read=files.read, write=files.write) == [Path('x.twee')]
        assert files.files[Path('x.twee')] == (
            ':: B {"position":"0,0","size":"100,100"}\n'
            ':: B {"position":"10,0","size":"100,100"}\n'
        )
        assert a.title_line == ':: B {"position":"0,0","size":"100,100"}'
        assert b.title_line == ':: B {"position":"10,0","size":"100,100"}'

    def test_unchanged_passage_meta_updated(self):
        """Test skipped passages still get position and size in their metadata."""
        files = MemoryFiles({'story.twee': STORY_TWEE})
        start, end = parse_passages(STORY_TWEE, 'story.twee')
        start.position.x = 11

        save_passages([start, end], read=files.read, write=files.write)

        assert end.title_line == ':: Next [x tag y] {"position":"200,20"}'
        assert end.meta.position == '200,20'
        assert end.meta.size == '100,100'

    def test_meta_filled_for_passage_without_metadata(self):
        text = ':: A\n:: B\n'
        files = MemoryFiles({'ab.twee': text})
        a, b = parse_passages(text, 'ab.twee')
        assert b.meta.position is None

        save_passages([a, b], read=files.read, write=files.write)

        assert files.writes == []
        assert b.meta.position == '0,0'
        assert b.meta.size == '100,100'

    def test_passage_without_file(self):
        with pytest.raises(ValueError):
            save_passages([Passage(title_line=':: A', title='A')])

    def test_write_failure_propagates(self):
        def failing_write(path, text):
            raise PermissionError(f"read-only: {path}")

        files = MemoryFiles({'story.twee': STORY_TWEE})
        passages = parse_passages(STORY_TWEE, 'story.twee')
        passages[0].position.x = 1

        with pytest.raises(OSError):
            save_passages(passages, read=files.read, write=failing_write)


class TestFindLine:
    """Tests for find_line()."""

    def test_whole_lines_only(self):
        text = ':: A\n:: AB\nx :: A\n:: A'
        assert find_line(text, ':: A') == [0, 18]


class TestMain:
    """Tests for the command-line entry point."""

    def test_normalize(self, tmp_path, monkeypatch):
        story_file = tmp_path / 'story.twee'
        story_file.write_text('::Start\n[[Next]]\n', encoding='utf-8')

        monkeypatch.setattr(sys, 'argv', ['tweeweave-save', str(tmp_path), '--normalize'])
        assert main() == EXIT_SUCCESS
        assert story_file.read_text(encoding='utf-8') == (
            ':: Start {"position":"0,0","size":"100,100"}\n[[Next]]\n'
        )

    def test_stale_exit_code(self, tmp_path, monkeypatch):
        (tmp_path / 'dup.twee').write_text(':: Dup\n:: Dup\n', encoding='utf-8')

        monkeypatch.setattr(sys, 'argv', ['tweeweave-save', str(tmp_path), '--normalize'])
        assert main() == EXIT_STALE


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
