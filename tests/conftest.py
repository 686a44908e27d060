"""Shared fixtures: an in-memory store and helpers to drive spiders offline."""
from unittest.mock import MagicMock

import pytest
from scrapy.http import HtmlResponse, Request


class FakeStore:
    """Keeps records per kind in memory, keyed by natural_key."""

    def __init__(self, seed=None):
        self.docs = {}
        self.closed = False
        for kind, keys in (seed or {}).items():
            for key in keys:
                self.docs.setdefault(kind, {})[key] = {"natural_key": key}

    def exists(self, kind, key):
        return key in self.docs.get(kind, {})

    def insert_batch(self, kind, records):
        stored = self.docs.setdefault(kind, {})
        inserted = []
        for record in records:
            key = record["natural_key"]
            if key in stored:
                continue
            stored[key] = dict(record)
            inserted.append(record)
        return inserted

    def count_all(self, kind):
        return len(self.docs.get(kind, {}))

    def merge_sections(self, kind, key, sections):
        doc = self.docs.get(kind, {}).get(key)
        if doc is None:
            return 0
        known = {s["title"] for s in doc.setdefault("sections", [])}
        fresh = [s for s in sections if s["title"] not in known]
        doc["sections"].extend(fresh)
        return len(fresh)

    def close(self):
        self.closed = True


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def make_spider():
    def make(cls, store=None, **kwargs):
        spider = cls(store=store if store is not None else FakeStore(), **kwargs)
        spider.crawler = MagicMock()
        return spider
    return make


def html_response(url, body, **cb_kwargs):
    request = Request(url, cb_kwargs=cb_kwargs)
    return HtmlResponse(url=url, body=body.encode("utf-8"), encoding="utf-8", request=request)


PROJECT_LISTING = """
<html><body>
<section class="section">
  <div class="teaser main-teaser has-thumb clearfix">
    <a href="/nos-actions/projet-a/"><img src="https://www.auf.org/img/a.jpg"></a>
    <h3 class="title">Projet A</h3>
    <div class="regions"><a class="lnk-region" href="#">+ Europe de l'Ouest</a></div>
    <div class="text">Un premier projet.</div>
  </div>
  <div class="teaser main-teaser has-thumb clearfix">
    <a href="nos-actions/projet-b/"><img src="/img/b.jpg"></a>
    <h3 class="title">Projet B</h3>
    <div class="text">Un second projet.</div>
  </div>
  <div class="teaser main-teaser has-thumb clearfix">
    <a href="/nos-actions/sans-titre/"></a>
    <h3 class="title">  </h3>
  </div>
</section>
</body></html>
"""

EMPTY_LISTING = "<html><body><section class='section'><p>Aucun résultat</p></section></body></html>"

MEMBER_LISTING = """
<html><body>
<section class="section section-members">
  <div class="teaser member-teaser clearfix">
    <h3 class="title">Université Cheikh Anta Diop</h3>
    <span class="address">Dakar, Sénégal</span>
    <div class="regions"><a class="lnk-region" href="#">+ Afrique de l'Ouest</a></div>
    <a class="lnk-more" href="/membres/ucad/">Voir la fiche</a>
  </div>
</section>
</body></html>
"""

PARTNER_LISTING = """
<html><body>
<div class="entry-content clearfix">
  <div class="wp-caption alignnone">
    <a href="/partenaires/unesco/"><img src="/logos/unesco.png" alt="  Logo   UNESCO "></a>
    <p class="wp-caption-text">UNESCO</p>
  </div>
  <div class="wp-caption alignnone">
    <a href="https://www.oif.org"><img src="/logos/oif.png" alt="Logo OIF"></a>
    <p class="wp-caption-text">OIF</p>
  </div>
  <div class="wp-caption alignnone">
    <img src="/logos/anonyme.png" alt="">
  </div>
</div>
</body></html>
"""

RESOURCE_LISTING = """
<html><body>
<section class="section section-default">
  <div class="entry-content clearfix">
    <h2>Formation à distance</h2>
    <p>Premier paragraphe.</p>
    <p>  </p>
    <p>Second paragraphe.</p>
    <a href="/ressources/formation-a-distance/">Lire</a>
    <img src="/img/fad.png">
  </div>
  <div class="entry-content clearfix">
    <h2>Ateliers</h2>
    <p>Des ateliers.</p>
    <a href="https://www.auf.org/ressources/ateliers/">Lire</a>
  </div>
</section>
</body></html>
"""

EVENT_LISTING = """
<html><body>
<div id="lightgallery">
  <div class="col-md-4 portfolio-item">
    <h1 class="Libre-bold text-white pt-2">Sommet de la Francophonie</h1>
    <span>du 4 au 5 octobre 2024</span>
    <p><img src="/themes/custom/images/map-marker.svg"><span>France</span><span>Villers-Cotterêts</span></p>
    <a href="/sommet-de-la-francophonie">En savoir plus</a>
  </div>
  <div class="col-md-4 portfolio-item">
    <h1 class="Libre-bold text-white pt-2">Journée internationale</h1>
    <span>le 20 mars 2025</span>
    <a href="/journee-internationale">En savoir plus</a>
  </div>
</div>
</body></html>
"""

PROJECT_DETAIL = """
<html><body>
<h1 class="entry-title">Projet A</h1>
<figure class="image"><img src="https://www.auf.org/img/a-large.jpg"></figure>
<div class="entry-content">
  <p><strong>OBJECTIFS</strong></p>
  <ul><li>Former les enseignants</li><li>Accompagner les établissements</li></ul>
  <p>CIBLE</p>
  <ul><li>Enseignants</li><li>Étudiants</li></ul>
  <p>PARTENAIRES</p>
  <ul>
    <li>Université de Lomé<ul><li>Laboratoire de physique</li></ul></li>
    <li>Université de Lomé</li>
    <li> </li>
    <li>Campus numérique</li>
  </ul>
  <p>BUDGET GLOBAL</p>
  <p>1 200 000 €</p>
  <p>RÔLE DE L'AUF</p>
  <p>Pilotage et financement</p>
  <ul><li>Durée : 3 ans</li></ul>
</div>
<div class="block block-tags"><a class="lnk-region" href="#">+ Afrique de l'Ouest</a></div>
</body></html>
"""

MEMBER_DETAIL = """
<html><body>
<h1 class="entry-title">Université Cheikh Anta Diop</h1>
<div class="entry-content"><p>La plus grande université du Sénégal.</p></div>
<div class="entry-content entry-history"><p>Fondée en 1957 à Dakar.</p></div>
<div class="block block-contacts">
  <div class="name"><strong>Contact</strong></div>
  <div class="name"><strong>Awa Ndiaye</strong></div>
  <div class="occupation">Rectrice</div>
  <div class="status">Type statutaire : Public<br>Type universitaire : Université</div>
  <address class="address">BP 5005, Dakar-Fann</address>
  <div class="tel">Téléphone : +221 33 825 05 30</div>
  <div class="website"><a href="https://www.ucad.sn">Site web</a></div>
</div>
<div class="block block-tags"><a class="lnk-region" href="#">AUF - Afrique de l'Ouest</a></div>
</body></html>
"""

EVENT_DETAIL = """
<html><body>
<section class="noneinner">
  <div class="bg-cover nwsbig" style="background-image: url('/sites/default/files/sommet.jpg');"></div>
  <a data-fancybox href="https://www.youtube.com/watch?v=hero">Vidéo</a>
</section>
<h2 class="Font-Montserrat"><span class="field--name-title">Sommet de la Francophonie</span></h2>
<span class="date text-green">le 4 octobre 2024 | Sommet</span>
<div class="item"><p>Créer, innover et entreprendre en français.</p></div>
<div class="item">
  <h6 class="Libre-bold">Programme</h6>
  <p class="py-4">Le programme des deux journées.</p>
  <a class="btn btn-outline-orange rounded-50" href="/programme-du-sommet">Consulter</a>
</div>
<div class="field--name-field-hashtag-de-l-evenement"><div class="field__item">#Sommet2024</div></div>
<section class="voir-aussi">
  <a data-fancybox href="https://www.youtube.com/watch?v=other">Autre événement</a>
</section>
</body></html>
"""

RESUFF_MEMBERS = """
<html><body>
<div class="groupeCarte">
  <h3>Afrique</h3>
  <div class="txtDouble"><strong class="violet">Awa Diop</strong><br>Présidente du RESUFF<br>Professeure, Université Cheikh Anta Diop, Dakar&nbsp;<br><strong class="violet">Aminata Sow</strong><br>Chercheuse<br>Institut Pasteur, Dakar</div>
</div>
<div class="groupeCarte">
  <h3>Europe</h3>
  <div class="txtDouble"><strong class="violet">Claire Martin</strong><br>Maîtresse de conférences<br>École normale supérieure, Lyon</div>
</div>
<div class="groupeCarte"><h3>Vide</h3></div>
</body></html>
"""

RESUFF_RESOURCES = """
<html><body>
<div class="ligneDoc"><div class="txtDoc"><span class="violet">Colloque</span><span class="moyen">Actes du colloque de Dakar</span></div><a href="docs/actes.pdf">PDF</a></div>
<div class="ligneDoc"><div class="txtDoc"><span class="violet">Document</span><span class="moyen">Programme 2024</span></div><a href="/docs/programme.pdf">PDF</a></div>
<div class="ligneDoc"><div class="txtDoc"><span class="moyen">Sans étiquette</span></div><a href="/docs/x.pdf">PDF</a></div>
</body></html>
"""
