"""Role names and the role groups used by route guards"""

BDM = "bdm"
ESTIMATOR = "estimator"
COO = "coo"
DIRECTOR = "director"
DESIGN_LEAD = "design_lead"
DESIGNER = "designer"
ACCOUNTS = "accounts"

ALL_ROLES = (BDM, ESTIMATOR, COO, DIRECTOR, DESIGN_LEAD, DESIGNER, ACCOUNTS)

EXECUTIVE_ROLES = (COO, DIRECTOR)
DESIGN_MANAGEMENT_ROLES = (DESIGN_LEAD, COO, DIRECTOR)
FINANCE_ROLES = (ACCOUNTS, COO, DIRECTOR)

USER_STATUSES = ("active", "inactive", "suspended")
BLOCKED_STATUSES = ("inactive", "suspended")
