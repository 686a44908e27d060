import pytest

from aufcrawler.detail import (
    DEFAULT_AUF_ROLE, DEFAULT_TARGET_AUDIENCE, make_soup, parse_detail, project_budget,
    project_objectives,
)
from aufcrawler.items import EVENT, MEMBER, PARTNER, PROJECT, EventItem, MemberItem, ProjectItem

from conftest import EVENT_DETAIL, MEMBER_DETAIL, PROJECT_DETAIL

URL = "https://www.auf.org/nos-actions/projet-a/"


def project_page(content):
    return f"""<html><body><h1 class="entry-title">Projet</h1>
    <div class="entry-content">{content}</div></body></html>"""


def content_of(html):
    return make_soup(html).find("div", class_="entry-content")


def test_project_marker_fields():
    item = parse_detail(PROJECT_DETAIL, PROJECT, URL)
    assert isinstance(item, ProjectItem)
    assert item["title"] == "Projet A"
    assert item["source_url"] == URL
    assert item["image_url"] == "https://www.auf.org/img/a-large.jpg"
    assert item["objectives"] == "Former les enseignants; Accompagner les établissements"
    assert item["target_audience"] == "Enseignants; Étudiants"
    assert item["overall_budget"] == "1 200 000 €"
    assert item["period"] == "3 ans"
    assert item["role_of_auf"] == ["Pilotage et financement"]
    assert item["country_of_intervention"] == "Afrique de l'Ouest"


def test_project_partners_flatten_nested_items_once():
    item = parse_detail(PROJECT_DETAIL, PROJECT, URL)
    assert item["operational_partners"] == [
        "Université de Lomé", "Laboratoire de physique", "Campus numérique",
    ]


def test_project_fallbacks_without_markers():
    page = project_page("""
        <p>Premier paragraphe.</p>
        <p>PARTENAIRES : à venir</p>
        <p>Second paragraphe.</p>
        <p>Troisième paragraphe.</p>
    """)
    item = parse_detail(page, PROJECT)
    assert item["objectives"] == "Premier paragraphe. Second paragraphe."
    assert item["target_audience"] == DEFAULT_TARGET_AUDIENCE
    assert item["role_of_auf"] == [DEFAULT_AUF_ROLE]
    assert item["operational_partners"] == []
    assert item["overall_budget"] == ""
    assert item["period"] == ""
    assert item["projects_2024_2025"] == ""
    assert item["device"] == ""


def test_objectives_stop_at_next_section():
    content = content_of(project_page("""
        <p>OBJECTIFS</p>
        <p>IMPACT attendu</p>
        <ul><li>Ne fait pas partie des objectifs</li></ul>
    """))
    assert project_objectives(content) == ""


def test_objectives_are_truncated():
    content = content_of(project_page(f"<p>{'o' * 700}</p>"))
    objectives = project_objectives(content)
    assert len(objectives) == 503
    assert objectives.endswith("...")


def test_budget_falls_back_to_text_around_euro_sign():
    content = content_of(project_page(
        "<p>Le projet est doté d'une enveloppe de 250 000 € sur trois ans, cofinancée.</p>"))
    budget = project_budget(content)
    assert "250 000 €" in budget
    assert len(budget) <= 40


def test_missing_title_is_a_template_mismatch():
    page = "<html><body><div class='entry-content'><p>OBJECTIFS</p></div></body></html>"
    assert parse_detail(page, PROJECT, URL) is None
    assert parse_detail(page, MEMBER, URL) is None
    assert parse_detail("", EVENT) is None


def test_kinds_without_detail_template():
    with pytest.raises(ValueError):
        parse_detail(PROJECT_DETAIL, PARTNER)


def test_member_detail():
    item = parse_detail(MEMBER_DETAIL.encode("utf-8"), MEMBER, "https://www.auf.org/membres/ucad/")
    assert isinstance(item, MemberItem)
    assert item["name"] == "Université Cheikh Anta Diop"
    assert item["description"] == "La plus grande université du Sénégal."
    assert item["background"] == "Fondée en 1957 à Dakar."
    assert item["founded_year"] == "1957"
    assert item["contact_name"] == "Awa Ndiaye"
    assert item["contact_title"] == "Rectrice"
    assert item["statutory_type"] == "Public"
    assert item["university_type"] == "Université"
    assert item["address"] == "BP 5005, Dakar-Fann"
    assert item["phone"] == "+221 33 825 05 30"
    assert item["website"] == "https://www.ucad.sn"
    assert item["region"] == "Afrique de l'Ouest"


def test_member_without_contacts_block():
    page = "<html><body><h1 class='entry-title'>Université X</h1></body></html>"
    item = parse_detail(page, MEMBER)
    assert item["contact_name"] == ""
    assert item["founded_year"] == ""
    assert item["description"] == ""


def test_event_detail():
    item = parse_detail(EVENT_DETAIL, EVENT, "https://www.francophonie.org/sommet-de-la-francophonie")
    assert isinstance(item, EventItem)
    assert item["title"] == "Sommet de la Francophonie"
    assert item["date"] == "4 octobre 2024"
    assert item["event_type"] == "Sommet"
    assert item["image_url"] == "https://www.francophonie.org/sites/default/files/sommet.jpg"
    assert item["video_url"] == "https://www.youtube.com/watch?v=hero"
    assert item["theme"] == "Créer, innover et entreprendre en français."
    assert item["description"] == item["theme"]
    assert item["hashtags"] == "#Sommet2024"
    assert item["city"] == ""
    assert item["sections"] == [{
        "title": "Programme",
        "description": "Le programme des deux journées.",
        "link_url": "https://www.francophonie.org/programme-du-sommet",
        "link_text": "Consulter",
    }]


def test_event_video_never_comes_from_related_events():
    page = EVENT_DETAIL.replace('<a data-fancybox href="https://www.youtube.com/watch?v=hero">Vidéo</a>', "")
    assert parse_detail(page, EVENT)["video_url"] == ""
