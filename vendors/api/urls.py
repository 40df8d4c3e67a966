from django.urls import path
from vendors.api.views import VendorViewSet

vendor_list = VendorViewSet.as_view({
    'get': 'list',
    'post': 'create'
})
vendor_detail = VendorViewSet.as_view({
    'get': 'retrieve',
    'put': 'update',
    'patch': 'partial_update',
    'delete': 'destroy'
})

urlpatterns = [
    path('', vendor_list, name='vendor-list'),
    path('<str:pk>/', vendor_detail, name='vendor-detail'),
]
