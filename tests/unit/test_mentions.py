"""Unit tests for @mention parsing, resolution and highlighting."""

from __future__ import annotations

import pytest

from studioflow.workflow.mentions import (
    RosterMember,
    extract_tokens,
    find_mentions,
    highlight_mentions,
    resolve_mentions,
)


@pytest.fixture
def roster() -> list[RosterMember]:
    return [RosterMember(1, "Sammy Lee"), RosterMember(2, "Aaron Smith")]


def _ids(text: str, roster: list[RosterMember]) -> list[object]:
    return [m.user_id for m in resolve_mentions(text, roster)]


class TestExtractTokens:
    def test_tokens_stop_at_punctuation_and_next_at(self):
        assert extract_tokens("Hi @a b, @c") == ["a b", "c"]

    def test_tokens_stop_at_line_break(self):
        assert extract_tokens("@Aaron\nSmith") == ["Aaron"]

    def test_email_addresses_are_not_tokens(self):
        assert extract_tokens("send it to sam@studio.com") == []


class TestResolveMentions:
    def test_partial_and_full_names(self, roster):
        assert _ids("Hey @sammy and @Aaron Smith, check this", roster) == [1, 2]

    def test_longest_prefix_wins(self, roster):
        mentions = resolve_mentions("@Aaron Smith thanks for the update", roster)

        assert len(mentions) == 1
        assert mentions[0].text == "Aaron Smith"
        assert mentions[0].display_name == "Aaron Smith"
        assert mentions[0].start == 0
        assert mentions[0].end == len("@Aaron Smith")

    def test_exact_match_beats_earlier_partial_match(self):
        roster = [RosterMember("lee", "Sam Lee"), RosterMember("sam", "Sam")]
        assert _ids("@Sam can you look", roster) == ["sam"]

    def test_earlier_roster_entry_wins_partial_ties(self):
        roster = [RosterMember("a", "Alexandra Reid"), RosterMember("b", "Alex Kim")]
        assert _ids("@alex", roster) == ["a"]

    def test_each_member_reported_once_in_order(self, roster):
        text = "@Aaron first, then @sammy, then @Aaron Smith again"
        assert _ids(text, roster) == [2, 1]
        assert len(find_mentions(text, roster)) == 3

    def test_unmatched_tokens_are_ignored(self, roster):
        assert _ids("@nobody knows", roster) == []

    def test_empty_roster(self):
        assert resolve_mentions("@Sammy", []) == []

    def test_same_input_same_output(self, roster):
        text = "@sammy @Aaron"
        assert resolve_mentions(text, roster) == resolve_mentions(text, roster)

    def test_names_with_parentheses(self):
        roster = [RosterMember(7, "Kim (Design Lead)")]
        assert _ids("thanks @kim!", roster) == [7]


class TestHighlightMentions:
    def test_wraps_mentions(self, roster):
        html = highlight_mentions("Hi @sammy", roster)
        assert html == 'Hi <span class="mention" data-user-id="1">@sammy</span>'

    def test_escapes_surrounding_text(self, roster):
        html = highlight_mentions("<b>@Sammy</b>", roster)
        assert html == (
            '&lt;b&gt;<span class="mention" data-user-id="1">@Sammy</span>&lt;/b&gt;'
        )

    def test_unresolved_tokens_stay_plain(self, roster):
        assert highlight_mentions("@nobody & co", roster) == "@nobody &amp; co"

    def test_keeps_text_after_matched_prefix(self, roster):
        html = highlight_mentions("@Aaron Smith thanks", roster)
        assert html.endswith("</span> thanks")

    def test_custom_template(self, roster):
        html = highlight_mentions("@Aaron", roster, template="[{user_id}:{text}]")
        assert html == "[2:Aaron]"
