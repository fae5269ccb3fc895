"""
Shared fixtures: in-memory and file-backed stores, and a populated start page.
"""

from types import SimpleNamespace

import pytest

from zandar.service import StartPage
from zandar.store import JsonStore


@pytest.fixture
def store():
    return JsonStore()


@pytest.fixture
def file_store(tmp_path):
    return JsonStore(str(tmp_path / "zandar.json"))


@pytest.fixture
def sp(store):
    return StartPage(store)


@pytest.fixture
def populated(sp):
    """
    Home: column 1 = News (HN, Lobsters), Tools (GitHub); column 2 = Reading.
    Work: column 1 = Jira (Board).
    """
    e = sp.engine
    home = e.create_page("Home")
    work = e.create_page("Work")
    news = e.create_widget(home["id"], 1, "News")
    tools = e.create_widget(home["id"], 1, "Tools")
    reading = e.create_widget(home["id"], 2, "Reading")
    jira = e.create_widget(work["id"], 1, "Jira")
    hn = e.add_link(news["id"], "HN", "news.ycombinator.com")
    lobsters = e.add_link(news["id"], "Lobsters", "https://lobste.rs")
    github = e.add_link(tools["id"], "GitHub", "github.com")
    board = e.add_link(jira["id"], "Board", "jira.example.com")
    return SimpleNamespace(
        sp=sp, store=sp.store, engine=e,
        home=home, work=work,
        news=news, tools=tools, reading=reading, jira=jira,
        hn=hn, lobsters=lobsters, github=github, board=board,
    )
