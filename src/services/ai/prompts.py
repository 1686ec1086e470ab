"""Prompt catalogue for the PFE report drafting assistant.

The assistant writes in French for ENSAO (École Nationale des Sciences
Appliquées d'Oujda). Every prompt restates the house formatting rules so the
model keeps them across long editing sessions.
"""

from __future__ import annotations

from schemas.project import ProjectMetadata


FORMATTING_RULES = """RÈGLES DE FORMATAGE STRICTES (ENSAO) :
1. Marges : Haut 3cm, Bas 3cm, Gauche 4.5cm (reliure), Droite 2cm.
2. Police : Taille 12pt, Interligne 1.5.
3. Structure : Respecte l'ordre (Dédicace -> Remerciements -> Résumés -> \
Table des matières -> Liste des figures -> Contenu).
4. Langue : Le contenu doit être académique, formel, et utiliser le "nous" \
de modestie."""

RESPONSE_PROTOCOL = """PROTOCOLE DE RÉPONSE :
Tu agis comme un assistant collaboratif.
1. Réponds avec une courte explication textuelle des changements effectués \
(ex: "J'ai ajouté le chapitre méthodologie").
2. Inclus TOUJOURS le code LaTeX COMPLET et mis à jour dans un bloc de code \
(markdown).
3. Ne donne pas juste l'extrait, renvoie tout le fichier."""

REPORT_SYSTEM_INSTRUCTION = f"""Tu es un expert en rédaction académique et un \
développeur LaTeX chevronné, spécialisé dans la génération de rapports de PFE \
pour l'ENSAO (École Nationale des Sciences Appliquées d'Oujda).

TA MISSION :
Tu reçois en entrée le code LaTeX actuel d'un rapport et une instruction de \
l'utilisateur (ex: "Ajoute une section sur le Deep Learning"). Tu dois \
modifier le code intelligemment pour satisfaire la demande sans casser la \
structure du document.

{FORMATTING_RULES}

{RESPONSE_PROTOCOL}"""


def build_initial_prompt(metadata: ProjectMetadata) -> str:
    """First turn of a session: draft the whole report from the form."""
    supervisors = ", ".join(metadata.named_supervisors())
    jury = ", ".join(metadata.named_jury_members())

    return f"""Génère un rapport PFE complet en LaTeX pour le projet suivant \
(Réponds avec du code LaTeX standard dans un bloc markdown) :

Détails Académiques :
Université : {metadata.university}
École : {metadata.school}
Année : {metadata.academic_year}
Filière : {metadata.program}

Détails du Projet :
Titre : {metadata.title}
Étudiant : {metadata.student_name}
Encadrant(s) : {supervisors}
Membre(s) du Jury : {jury}

Contexte et thèmes : {metadata.keywords}

Description : {metadata.description}

Instructions : {metadata.custom_instructions}

IMPORTANT : Applique les règles de formatage ENSAO (Marges 3cm/3cm/4.5cm/2cm, \
Interligne 1.5, etc.)."""


def build_edit_prompt(current_document: str, instruction: str) -> str:
    """Follow-up turn: the full current document plus the user's request."""
    return f"""CODE ACTUEL :
{current_document}

INSTRUCTION DE L'UTILISATEUR :
{instruction}

Rappel : Fournis une courte explication suivie du code LaTeX complet dans un \
bloc code."""


def build_generation_request_text(metadata: ProjectMetadata) -> str:
    """Transcript echo of the generate action (the full prompt is not shown)."""
    return f"Génère le rapport PFE pour : {metadata.title}"
