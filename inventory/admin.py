from django.contrib import admin

from inventory.models import Product, SyncLog


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('sku', 'name', 'warehouse_qty', 'amazon_qty', 'ml_qty', 'last_sync_at')
    search_fields = ('sku', 'name')


@admin.register(SyncLog)
class SyncLogAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'status', 'message')
    list_filter = ('status',)
