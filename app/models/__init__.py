# app/models/__init__.py
from app.models.company_models import Company, CompanyMember
from app.models.customer_models import Customer
from app.models.product_models import Product
from app.models.quote_models import Quote
from app.models.activity_models import UserActivity
