from rest_framework import viewsets, status
from rest_framework.exceptions import ValidationError
from rest_framework.parsers import JSONParser, FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
import logging

from vendors.api.serializers import (
    VendorSerializer,
    VendorDetailSerializer,
    VendorCreateSerializer,
    VendorUpdateSerializer,
)
from vendors.models import Vendor
from vendors.services import VendorService
from vendors.storage import BillStorageError
from utils.api import parse_id, bad_request, not_found, server_error
from utils.audit import LedgerAuditLogger


logger = logging.getLogger(__name__)
audit_logger = LedgerAuditLogger()


def log_server_error(action, exc, vendor_id=None, message='Server error'):
    logger.error(f"Error in VendorViewSet.{action}: {str(exc)}", exc_info=True)
    audit_logger.log_event(
        'VENDOR_ENDPOINT_ERROR',
        vendor_id,
        {'action': action, 'error': str(exc)},
        'ERROR'
    )
    return server_error(message)


class VendorViewSet(viewsets.ViewSet):
    """
    Vendor ledger endpoints
    URL: /api/vendors/ and /api/vendors/{id}/
    """
    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser, FormParser, MultiPartParser]

    def list(self, request):
        """All vendors with their derived payment status"""
        try:
            vendors = VendorService.list_vendors()
            serializer = VendorSerializer(vendors, many=True)
            return Response({
                'success': True,
                'data': serializer.data
            }, status=status.HTTP_200_OK)
        except Exception as e:
            return log_server_error('list', e)

    def create(self, request):
        """Create a vendor, uploading the optional bill first"""
        serializer = VendorCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return bad_request(serializer.errors)

        data = serializer.validated_data
        try:
            vendor = VendorService.create_vendor(
                name=data['name'],
                contact_number=data['contact_number'],
                total_amount=data['total_amount'],
                address=data.get('address', ''),
                bill_file=data.get('bill')
            )
        except ValidationError as e:
            return bad_request(e.detail)
        except BillStorageError as e:
            return log_server_error('create', e, message='Bill upload failed')
        except Exception as e:
            return log_server_error('create', e)

        return Response({
            'success': True,
            'message': 'Vendor added successfully',
            'data': VendorSerializer(vendor).data
        }, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        """Vendor with its full transaction history"""
        try:
            vendor_id = parse_id(pk)
            vendor = VendorService.get_vendor(vendor_id)
            return Response({
                'success': True,
                'data': VendorDetailSerializer(vendor).data
            }, status=status.HTTP_200_OK)
        except ValidationError as e:
            return bad_request(e.detail)
        except Vendor.DoesNotExist:
            return not_found('Vendor not found')
        except Exception as e:
            return log_server_error('retrieve', e, pk)

    def update(self, request, pk=None):
        """Merge the given fields over the vendor and optionally record a payment"""
        try:
            vendor_id = parse_id(pk)
        except ValidationError as e:
            return bad_request(e.detail)

        serializer = VendorUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return bad_request(serializer.errors)

        data = dict(serializer.validated_data)
        new_paid_amount = data.pop('new_paid_amount')
        bill_file = data.pop('bill', None)

        try:
            result = VendorService.update_vendor(
                vendor_id,
                changes=data,
                new_paid_amount=new_paid_amount,
                bill_file=bill_file
            )
        except ValidationError as e:
            return bad_request(e.detail)
        except Vendor.DoesNotExist:
            return not_found('Vendor not found')
        except Exception as e:
            return log_server_error('update', e, vendor_id)

        vendor_data = VendorSerializer(result['vendor']).data
        vendor_data['paid_amount'] = str(result['paid_amount'])
        vendor_data['status'] = result['status']

        return Response({
            'success': True,
            'message': 'Vendor updated successfully',
            'data': vendor_data
        }, status=status.HTTP_200_OK)

    def partial_update(self, request, pk=None):
        return self.update(request, pk)

    def destroy(self, request, pk=None):
        """Delete a vendor together with its transactions"""
        try:
            vendor_id = parse_id(pk)
            vendor = VendorService.delete_vendor(vendor_id)
        except ValidationError as e:
            return bad_request(e.detail)
        except Vendor.DoesNotExist:
            return not_found('Vendor not found')
        except Exception as e:
            return log_server_error('destroy', e, pk)

        return Response({
            'success': True,
            'message': 'Vendor deleted successfully',
            'data': VendorSerializer(vendor).data
        }, status=status.HTTP_200_OK)
