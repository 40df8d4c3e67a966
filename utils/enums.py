from django.db import models


class PaymentStatus(models.TextChoices):
    PENDING = "Pending", "Pending"
    PARTIAL = "Partial", "Partial"
    PAID = "Paid", "Paid"
