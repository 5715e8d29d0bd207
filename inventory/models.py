from django.db import models


class Product(models.Model):
    sku = models.CharField(max_length=100, unique=True)
    name = models.CharField(max_length=255)
    warehouse_qty = models.PositiveIntegerField(default=0)
    amazon_qty = models.PositiveIntegerField(default=0)
    ml_qty = models.PositiveIntegerField(default=0)
    amazon_asin = models.CharField(max_length=20, blank=True, null=True)
    ml_item_id = models.CharField(max_length=50, blank=True, null=True)
    ml_variation_id = models.CharField(max_length=50, blank=True, null=True)
    last_sync_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['sku']

    def __str__(self):
        return f"{self.sku} ({self.warehouse_qty})"

    def to_dict(self):
        return {
            'id': self.pk,
            'sku': self.sku,
            'name': self.name,
            'warehouse_qty': self.warehouse_qty,
            'amazon_qty': self.amazon_qty,
            'ml_qty': self.ml_qty,
            'amazon_asin': self.amazon_asin,
            'ml_item_id': self.ml_item_id,
            'ml_variation_id': self.ml_variation_id,
            'last_sync_at': self.last_sync_at.isoformat() if self.last_sync_at else None,
        }


class SyncLog(models.Model):
    STATUS_SUCCESS = 'success'
    STATUS_PARTIAL = 'partial'
    STATUS_ERROR = 'error'
    STATUS_CHOICES = [
        (STATUS_SUCCESS, 'Success'),
        (STATUS_PARTIAL, 'Partial'),
        (STATUS_ERROR, 'Error'),
    ]

    status = models.CharField(max_length=10, choices=STATUS_CHOICES)
    message = models.TextField()
    details = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.status}: {self.message} ({self.created_at})"


class SyncLock(models.Model):
    """Present only while a reconciliation run is in progress."""

    name = models.CharField(max_length=100, primary_key=True)
    owner = models.CharField(max_length=64)
    locked_at = models.DateTimeField()

    def __str__(self):
        return f"{self.name} held by {self.owner} since {self.locked_at}"
