from rest_framework import viewsets, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from django.http import HttpResponse
import logging

from ..models import Transaction
from ..services import PaymentLedgerService, BalanceReconciliationService
from .serializers import TransactionSerializer, PaymentSerializer, ReconciliationResultSerializer
from vendors.api.serializers import VendorSerializer
from vendors.models import Vendor
from utils.api import parse_id, bad_request, not_found, server_error
from utils.audit import LedgerAuditLogger


logger = logging.getLogger(__name__)
audit_logger = LedgerAuditLogger()


class PaymentViewSet(viewsets.ViewSet):
    """
    Payment ledger endpoints; every call adjusts the vendor's pending balance
    URL: /api/vendors/{vendor_id}/transactions/
         /api/vendors/transactions/{transaction_id}/
         /api/vendors/{vendor_id}/transactions/{transaction_id}/
    """
    permission_classes = [IsAuthenticated]

    def create(self, request, vendor_id=None):
        """Add a payment to a vendor"""
        try:
            vendor_id = parse_id(vendor_id, 'vendorId')
        except ValidationError as e:
            return bad_request(e.detail)

        serializer = PaymentSerializer(data=request.data)
        if not serializer.is_valid():
            return bad_request(serializer.errors)

        data = serializer.validated_data
        try:
            result = PaymentLedgerService.add_payment(
                vendor_id,
                data['amount'],
                note=data.get('note'),
                transaction_date=data.get('transaction_date')
            )
        except ValidationError as e:
            return bad_request(e.detail)
        except Vendor.DoesNotExist:
            return not_found('Vendor not found')
        except Exception as e:
            logger.error(f"Add transaction error: {str(e)}", exc_info=True)
            return server_error()

        return Response({
            'success': True,
            'message': 'Transaction added',
            'data': {
                'transaction': TransactionSerializer(result['transaction']).data,
                'vendor': VendorSerializer(result['vendor']).data,
                'status': result['status'],
                'overpayment': str(result['overpayment'])
            }
        }, status=status.HTTP_201_CREATED)

    def update(self, request, transaction_id=None):
        """Change the amount (and note/date) of a recorded payment"""
        try:
            transaction_id = parse_id(transaction_id, 'transactionId')
        except ValidationError as e:
            return bad_request(e.detail)

        serializer = PaymentSerializer(data=request.data)
        if not serializer.is_valid():
            return bad_request(serializer.errors)

        data = serializer.validated_data
        try:
            result = PaymentLedgerService.update_payment(
                transaction_id,
                data['amount'],
                note=data.get('note'),
                transaction_date=data.get('transaction_date')
            )
        except ValidationError as e:
            return bad_request(e.detail)
        except Transaction.DoesNotExist:
            return not_found('Transaction not found')
        except Vendor.DoesNotExist:
            return not_found('Vendor not found')
        except Exception as e:
            logger.error(f"Update transaction error: {str(e)}", exc_info=True)
            return server_error()

        return Response({
            'success': True,
            'message': 'Transaction updated',
            'data': {
                'transaction': TransactionSerializer(result['transaction']).data,
                'vendor': VendorSerializer(result['vendor']).data,
                'status': result['status']
            }
        }, status=status.HTTP_200_OK)

    def destroy(self, request, vendor_id=None, transaction_id=None):
        """Remove a payment and restore the vendor's pending balance"""
        try:
            vendor_id = parse_id(vendor_id, 'vendorId')
            transaction_id = parse_id(transaction_id, 'transactionId')
        except ValidationError:
            return bad_request('Invalid vendorId or transactionId')

        try:
            result = PaymentLedgerService.delete_payment(vendor_id, transaction_id)
        except Transaction.DoesNotExist:
            return not_found('Transaction not found')
        except Vendor.DoesNotExist:
            return not_found('Vendor not found')
        except Exception as e:
            logger.error(f"Delete transaction error: {str(e)}", exc_info=True)
            return server_error()

        return Response({
            'success': True,
            'message': 'Transaction deleted',
            'data': {
                'vendor': VendorSerializer(result['vendor']).data,
                'status': result['status'],
                'restored_amount': str(result['amount'])
            }
        }, status=status.HTTP_200_OK)


@api_view(['GET'])
@permission_classes([IsAdminUser])
def reconcile_vendor_balance(request, vendor_id):
    """
    Check one vendor's pending balance against its ledger
    GET /api/vendors/reconcile/{vendor_id}/
    """
    try:
        vendor = Vendor.objects.get(id=parse_id(vendor_id, 'vendorId'))
        result = BalanceReconciliationService.balance_reconciliation(vendor)

        return Response({
            'success': True,
            'data': ReconciliationResultSerializer(result).data,
            'message': 'Vendor balance check completed'
        })

    except ValidationError as e:
        return bad_request(e.detail)
    except Vendor.DoesNotExist:
        return not_found('Vendor not found')
    except Exception as e:
        logger.error(f"Error in reconcile_vendor_balance API: {str(e)}", exc_info=True)
        return server_error()


@api_view(['GET'])
@permission_classes([IsAdminUser])
def reconcile_all_balances(request):
    """
    Check every vendor's pending balance against its ledger
    GET /api/vendors/reconcile-all/
    """
    try:
        results = BalanceReconciliationService.reconcile_all_balances()
        summary = results['summary']
        system_stats = summary['system_stats']

        return Response({
            'success': True,
            'data': {
                'summary': {
                    'total_vendors': summary['total_vendors'],
                    'consistent_vendors': summary['consistent_vendors'],
                    'inconsistent_vendors': summary['inconsistent_vendors'],
                    'consistency_percentage': round(summary['consistency_percentage'], 2),
                    'total_difference': str(summary['total_difference']),
                    'execution_time': round(summary['execution_time'], 2),
                    'checked_at': summary['checked_at']
                },
                'system_stats': {
                    'total_transactions': system_stats['total_transactions'],
                    'total_billed': str(system_stats['total_billed']),
                    'total_paid': str(system_stats['total_paid']),
                    'total_pending': str(system_stats['total_pending'])
                },
                'vendor_results': ReconciliationResultSerializer(results['vendor_results'], many=True).data
            },
            'message': 'Balance check completed for all vendors'
        })

    except Exception as e:
        logger.error(f"Error in reconcile_all_balances API: {str(e)}", exc_info=True)
        return server_error()


@api_view(['GET'])
@permission_classes([IsAdminUser])
def balance_report(request):
    """
    Plain-text reconciliation report
    GET /api/vendors/balance-report/?vendor_id=123
    """
    try:
        vendor_id = request.GET.get('vendor_id')
        if vendor_id:
            vendor_id = parse_id(vendor_id, 'vendor_id')

        report = BalanceReconciliationService.generate_reconciliation_report(vendor_id)
        return HttpResponse(
            report,
            content_type='text/plain; charset=utf-8',
            headers={'Content-Disposition': 'attachment; filename="balance_report.txt"'}
        )

    except ValidationError as e:
        return bad_request(e.detail)
    except Exception as e:
        logger.error(f"Error in balance_report API: {str(e)}", exc_info=True)
        return server_error()
