"""Tests for CLI module."""

import json
import tempfile
from io import StringIO
from pathlib import Path
from unittest.mock import patch

from hemoglobin.card_store import CardCollection
from hemoglobin.cards import Card
from hemoglobin.cli import format_card, main, run_search, show_card, show_status
from hemoglobin.data_manager import DataManager


class TestFormatCard:
    """Test format_card."""

    def test_with_kins(self, grave_beast: Card):
        """Stats and kins are shown."""
        assert format_card(grave_beast) == "card-001  Grave Beast (Unit) 3/4/1/2 [Beast, Undead]"

    def test_without_kins(self, collection: CardCollection):
        """Cards without kins omit the bracket."""
        card = collection.get_card_by_id("card-003")

        assert format_card(card) == "card-003  Summoning Circle (Spell) 2/0/0/0"


class TestRunSearch:
    """Test the search command."""

    def test_prints_matches(self, cards_file: Path):
        """Matching cards and a summary are printed."""
        with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
            code = run_search(DataManager(cards_file), "kin:Beast")
            output = mock_stdout.getvalue()

        assert code == 0
        assert "Grave Beast" in output
        assert "Storm Dragon" not in output
        assert "1 card(s) matched, showing 1." in output
        assert "Query: kins:Beast" in output

    def test_limit(self, cards_file: Path):
        """Only the first limit cards are printed."""
        with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
            run_search(DataManager(cards_file), "", limit=2)
            output = mock_stdout.getvalue()

        assert "card-001" in output
        assert "card-002" in output
        assert "card-003" not in output
        assert "5 card(s) matched, showing 2." in output

    def test_parse_error(self, cards_file: Path):
        """Parse errors print the message and hint."""
        with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
            code = run_search(DataManager(cards_file), "wisdom>3")
            output = mock_stdout.getvalue()

        assert code == 1
        assert "Error:" in output
        assert "Hint:" in output

    def test_missing_file(self):
        """A missing card file is reported."""
        with tempfile.TemporaryDirectory() as tmpdir:
            with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
                code = run_search(DataManager(Path(tmpdir) / "cards.json"), "")
                output = mock_stdout.getvalue()

        assert code == 1
        assert "File not found" in output

    def test_invalid_file(self):
        """Malformed card data is reported."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "cards.json"
            path.write_text(json.dumps([{"id": "x"}]))

            with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
                code = run_search(DataManager(path), "")
                output = mock_stdout.getvalue()

        assert code == 1
        assert "Invalid card data" in output


class TestShowCard:
    """Test the card command."""

    def test_found(self, cards_file: Path):
        """The card is printed as JSON."""
        with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
            code = show_card(DataManager(cards_file), "card-042")
            output = mock_stdout.getvalue()

        assert code == 0
        assert json.loads(output)["name"] == "Iron Sentinel"

    def test_not_found(self, cards_file: Path):
        """Missing ids exit with an error."""
        with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
            code = show_card(DataManager(cards_file), "card-404")
            output = mock_stdout.getvalue()

        assert code == 1
        assert "Card not found: card-404" in output


class TestShowStatus:
    """Test the status command."""

    def test_status(self, cards_file: Path):
        """Status shows source and count."""
        with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
            code = show_status(DataManager(cards_file))
            output = mock_stdout.getvalue()

        assert code == 0
        assert "Hemoglobin Card Data Status" in output
        assert str(cards_file) in output
        assert "Card count:   5" in output

    def test_status_missing_file(self):
        """Missing files show an empty status."""
        with tempfile.TemporaryDirectory() as tmpdir:
            with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
                code = show_status(DataManager(Path(tmpdir) / "cards.json"))
                output = mock_stdout.getvalue()

        assert code == 1
        assert "Never" in output


class TestMain:
    """Test argument handling."""

    def test_no_command_prints_help(self):
        """No subcommand prints help."""
        with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
            code = main([])
            output = mock_stdout.getvalue()

        assert code == 0
        assert "search" in output

    def test_search_command(self, cards_file: Path):
        """search runs against the given card file."""
        with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
            code = main(["--cards", str(cards_file), "search", "type:spell", "--limit", "1"])
            output = mock_stdout.getvalue()

        assert code == 0
        assert "card-003" in output
        assert "2 card(s) matched, showing 1." in output

    def test_card_command(self, cards_file: Path):
        """card prints the requested card."""
        with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
            code = main(["--cards", str(cards_file), "card", "card-001"])
            output = mock_stdout.getvalue()

        assert code == 0
        assert json.loads(output)["id"] == "card-001"

    def test_cards_from_environment(self, cards_file: Path):
        """The card file defaults to HEMOGLOBIN_CARDS."""
        with patch.dict("os.environ", {"HEMOGLOBIN_CARDS": str(cards_file)}):
            with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
                code = main(["status"])
                output = mock_stdout.getvalue()

        assert code == 0
        assert "Card count:   5" in output
