from django.urls import path

from inventory import views

urlpatterns = [
    path('inventory/', views.product_list, name='product-list'),
    path('inventory/<int:pk>/', views.product_detail, name='product-detail'),
    path('sync/', views.sync_now, name='sync-now'),
    path('cron/', views.cron_sync, name='cron-sync'),
    path('ml-callback/', views.ml_callback, name='ml-callback'),
]
