"""Guide steps per front-end page.

Each step points at a CSS selector on the page (``target``) and says where
the tooltip goes relative to it (``position``: top / bottom / left / right).
"""

GUIDE_STEPS = {
    "index.html": [
        {
            "target": "h1",
            "title": "Bienvenue sur Zalagh Plancher",
            "description": "Cette page d'accueil vous permet de naviguer vers les "
                           "différentes sections de l'application.",
            "position": "bottom",
        },
        {
            "target": "form",
            "title": "Connexion",
            "description": "Utilisez ce formulaire pour vous connecter en tant "
                           "qu'administrateur ou employé.",
            "position": "right",
        },
        {
            "target": ".gallery",
            "title": "Galerie",
            "description": "Découvrez nos projets et notre flotte de véhicules.",
            "position": "left",
        },
    ],
    "admin.html": [
        {
            "target": ".brand",
            "title": "Espace Administrateur",
            "description": "Bienvenue dans l'espace administrateur. Ici vous pouvez "
                           "gérer tous les aspects de l'entreprise.",
            "position": "bottom",
        },
        {
            "target": "nav",
            "title": "Navigation Admin",
            "description": "Utilisez ces onglets pour naviguer entre les différentes "
                           "sections : Employés, Demandes, Assistant.",
            "position": "bottom",
        },
        {
            "target": "#section-employes",
            "title": "Gestion des Employés",
            "description": "Ici vous pouvez ajouter, modifier et gérer les employés "
                           "de l'entreprise.",
            "position": "top",
        },
        {
            "target": "#section-demandes",
            "title": "Gestion des Demandes",
            "description": "Consultez et gérez toutes les demandes de clients.",
            "position": "top",
        },
        {
            "target": "#section-assistant",
            "title": "Assistant IA",
            "description": "Utilisez l'assistant IA pour obtenir de l'aide et des "
                           "réponses automatiques.",
            "position": "top",
        },
    ],
    "employee-login.html": [
        {
            "target": "h1",
            "title": "Connexion Employé",
            "description": "Connectez-vous avec vos identifiants employé pour accéder "
                           "à votre espace personnel.",
            "position": "bottom",
        },
        {
            "target": "form",
            "title": "Formulaire de Connexion",
            "description": "Entrez votre email et mot de passe pour accéder à votre "
                           "tableau de bord.",
            "position": "right",
        },
    ],
    "employee-dashboard.html": [
        {
            "target": ".brand",
            "title": "Tableau de Bord Employé",
            "description": "Bienvenue dans votre espace personnel. Ici vous pouvez voir "
                           "vos notifications et gérer vos tâches.",
            "position": "bottom",
        },
        {
            "target": "nav",
            "title": "Navigation Employé",
            "description": "Utilisez ces onglets pour naviguer entre vos différentes "
                           "sections.",
            "position": "bottom",
        },
        {
            "target": "#section-notifications",
            "title": "Notifications",
            "description": "Consultez vos notifications et répondez aux messages de "
                           "l'administration.",
            "position": "top",
        },
        {
            "target": "#section-demandes",
            "title": "Mes Demandes",
            "description": "Gérez les demandes qui vous sont assignées.",
            "position": "top",
        },
    ],
    "employee-profile.html": [
        {
            "target": ".brand",
            "title": "Profil Employé",
            "description": "Gérez votre profil et vos informations personnelles.",
            "position": "bottom",
        },
        {
            "target": "form",
            "title": "Informations Personnelles",
            "description": "Mettez à jour vos informations personnelles et changez "
                           "votre mot de passe.",
            "position": "right",
        },
    ],
}


def steps_for(page: str) -> list:
    """Steps for a page name; '' or '/' means index.html, unknown pages get []."""
    page = (page or "").strip("/").split("/")[-1] or "index.html"
    return GUIDE_STEPS.get(page, [])
