"""Shared constants for zakat calculation and distribution."""

# Nisab thresholds (minimum wealth for zakat obligation)
NISAB_GOLD_GRAMS = 85
NISAB_SILVER_GRAMS = 595

NISAB_GRAMS = {
    'gold': NISAB_GOLD_GRAMS,
    'silver': NISAB_SILVER_GRAMS,
}

# Zakat rate (2.5%)
ZAKAT_RATE = 0.025

DEFAULT_NISAB_BASIS = 'gold'

# ============================================================
# Asset categories
# ============================================================

CATEGORY_IDS = [
    'cash',
    'precious_metals',
    'stocks',
    'retirement',
    'real_estate',
    'crypto',
    'receivables',
]

CATEGORY_LABELS = {
    'cash': 'Cash & Bank',
    'precious_metals': 'Precious Metals',
    'stocks': 'Stocks & Investments',
    'retirement': 'Retirement Accounts',
    'real_estate': 'Real Estate',
    'crypto': 'Cryptocurrency',
    'receivables': 'Money Owed to You',
}

# Every category starts with hawl met; the user switches it off explicitly
DEFAULT_HAWL_MET = True

CASH_FIELDS = [
    'cash_on_hand',
    'checking_account',
    'savings_account',
    'digital_wallets',
    'foreign_currency',
]

# Metal holdings by use; only occasional and investment holdings are zakatable
METAL_USES = ['regular', 'occasional', 'investment']
ZAKATABLE_METAL_USES = ['occasional', 'investment']

# Passive stock holdings and passive funds (30% rule)
PASSIVE_FUND_RATE = 0.30
PASSIVE_METHODS = {
    'quick': '30% Rule',
    'detailed': 'CRI Method',
}
DEFAULT_PASSIVE_METHOD = 'quick'

# Traditional retirement accounts are zakatable net of tax and penalty
RETIREMENT_TAX_RATE = 0.20
EARLY_WITHDRAWAL_PENALTY_RATE = 0.10

# Receivables likelihood and inclusion rules
RECEIVABLE_LIKELIHOODS = {
    'likely': {'label': 'Likely to be paid', 'field': 'receivables', 'rate': 1.0},
    'uncertain': {'label': 'Uncertain', 'field': 'receivables_uncertain', 'rate': 0.5},
    'doubtful': {'label': 'Doubtful/Bad debt', 'field': 'receivables_doubtful', 'rate': 0.0},
}

# Debts owed by the payer, deducted from the zakatable pool
LIABILITY_FIELDS = {
    'short_term_liabilities': 'Short-Term Debt',
    'long_term_liabilities_annual': 'Long-Term Debt (Annual)',
}

# ============================================================
# Eligibility policies
# ============================================================

ELIGIBILITY_POLICIES = {
    'either': 'Metals by their own weight, or the monetary pool against the selected basis',
    'lower_of_two': 'Whole zakatable pool against the lower of the gold and silver thresholds',
}
DEFAULT_ELIGIBILITY_POLICY = 'either'

# ============================================================
# Distribution
# ============================================================

DISTRIBUTION_MODES = ['equal', 'scholar', 'custom']
DEFAULT_DISTRIBUTION_MODE = 'equal'
# 'custom' is only reached by editing a category
STARTING_DISTRIBUTION_MODES = ['equal', 'scholar']

# Scholar-recommended weighting; overridable through configuration
SCHOLAR_DISTRIBUTION = {
    'the_poor': 20,
    'the_needy': 20,
    'administrators': 10,
    'reconciliation': 5,
    'freeing_captives': 10,
    'the_indebted': 15,
    'cause_of_allah': 15,
    'travelers': 5,
}

PERCENTAGE_TOLERANCE = 1e-6
# Allocation is considered complete when within one cent of the due amount
AMOUNT_TOLERANCE = 0.01
