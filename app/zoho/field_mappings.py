"""
Zoho mappings - how each portal model maps onto its Zoho module.

This single source of truth is used for both:
1. Parsing records fetched from Zoho into portal shaped dicts
2. Building the field data we send to Zoho when creating or updating records
"""

from app.main_app.models import Account, Contact, Deal, Task
from app.zoho._schema import EnumRule, MappingSpec, PolymorphicAlternative, PolymorphicLookup, SingleLookup
from app.zoho.enums import ACCOUNT_STATUS, DEAL_STAGE, LEAD_SOURCE, TASK_STATUS

ACCOUNT_SPEC = MappingSpec(
    module='Accounts',
    model=Account,
    field_map={
        'name': 'Account_Name',
        'website': 'Website',
        'phone': 'Phone',
        'billing_country': 'Billing_Country',
        'employee_count': 'Employees',
        'is_partner': 'Partner',
    },
    crm_equal={'status': EnumRule(zoho_key='Account_Status', codec=ACCOUNT_STATUS)},
    lookups={'owner_zoho_id': SingleLookup(zoho_key='Owner')},
)

CONTACT_SPEC = MappingSpec(
    module='Contacts',
    model=Contact,
    field_map={
        'first_name': 'First_Name',
        'last_name': 'Last_Name',
        'email': 'Email',
        'phone': 'Phone',
        'email_opt_out': 'Email_Opt_Out',
    },
    crm_different={'lead_source': EnumRule(zoho_key='Lead_Source', codec=LEAD_SOURCE)},
    lookups={'account_id': SingleLookup(zoho_key='Account_Name', model=Account)},
)

DEAL_SPEC = MappingSpec(
    module='Deals',
    model=Deal,
    field_map={'name': 'Deal_Name', 'amount': 'Amount', 'closing_date': 'Closing_Date'},
    crm_equal={'stage': EnumRule(zoho_key='Stage', codec=DEAL_STAGE)},
    crm_different={'lead_source': EnumRule(zoho_key='Lead_Source', codec=LEAD_SOURCE)},
    lookups={
        'account_id': SingleLookup(zoho_key='Account_Name', model=Account),
        'contact_id': SingleLookup(zoho_key='Contact_Name', model=Contact),
    },
)

TASK_SPEC = MappingSpec(
    module='Tasks',
    model=Task,
    field_map={'subject': 'Subject', 'due_date': 'Due_Date'},
    crm_equal={'status': EnumRule(zoho_key='Status', codec=TASK_STATUS)},
    lookups={
        # Zoho gives back one id for whichever parent is set, so this comes back as `related_to`
        'related_to': PolymorphicLookup(
            alternatives=(
                PolymorphicAlternative(portal_key='account_id', zoho_key='Related_Account', model=Account),
                PolymorphicAlternative(portal_key='deal_id', zoho_key='Related_Deal', model=Deal),
            )
        )
    },
)

MAPPING_SPECS: dict[str, MappingSpec] = {
    'accounts': ACCOUNT_SPEC,
    'contacts': CONTACT_SPEC,
    'deals': DEAL_SPEC,
    'tasks': TASK_SPEC,
}
