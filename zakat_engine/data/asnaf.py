"""The eight categories of zakat recipients (asnaf), in Qur'anic order."""

ASNAF_CATEGORIES = [
    {
        'id': 'the_poor',
        'name': 'The Poor (Fuqara)',
        'description': 'Those who lack the means to meet their basic needs.',
    },
    {
        'id': 'the_needy',
        'name': 'The Needy (Masakin)',
        'description': 'Those who have some means but still cannot meet all their essential needs.',
    },
    {
        'id': 'administrators',
        'name': 'Zakat Administrators',
        'description': 'Those who collect and distribute zakat.',
    },
    {
        'id': 'reconciliation',
        'name': 'For Reconciliation (Muallafat-ul-Quloob)',
        'description': 'Those whose hearts are inclined toward Islam or whose goodwill is sought.',
    },
    {
        'id': 'freeing_captives',
        'name': 'Freeing Captives (Riqab)',
        'description': 'Freeing those in bondage, trafficking or unjust imprisonment.',
    },
    {
        'id': 'the_indebted',
        'name': 'Those in Debt (Gharimeen)',
        'description': 'People burdened with debt for legitimate needs who cannot repay it.',
    },
    {
        'id': 'cause_of_allah',
        'name': 'In the Cause of Allah (Fi Sabilillah)',
        'description': 'Efforts that serve the greater good of the community.',
    },
    {
        'id': 'travelers',
        'name': 'Travelers (Ibn as-Sabil)',
        'description': 'Travelers who are stranded or in need while away from home.',
    },
]

ASNAF_IDS = [category['id'] for category in ASNAF_CATEGORIES]


def is_valid_asnaf(category_id) -> bool:
    return category_id in ASNAF_IDS


def get_asnaf_name(category_id: str) -> str | None:
    for category in ASNAF_CATEGORIES:
        if category['id'] == category_id:
            return category['name']
    return None
