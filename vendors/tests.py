"""
Test cases for vendor endpoints and bill uploads
"""

import os
import shutil
import tempfile
from decimal import Decimal
from unittest.mock import patch
from django.contrib import admin
from django.conf import settings
from django.contrib.auth.models import User
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError
from django.test import RequestFactory, TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from vendors.admin import VendorAdmin
from vendors.models import Vendor, VendorManager
from vendors.services import VendorService
from vendors.storage import BillStorageService
from transactions.models import Transaction
from transactions.services import PaymentLedgerService
from utils.enums import PaymentStatus


CONTACT = '+16502530000'


class VendorModelTestCase(TestCase):

    def test_pending_defaults_to_total(self):
        vendor = Vendor.objects.create(name='Acme', contact_number=CONTACT, total_amount=Decimal('500.00'))
        self.assertEqual(vendor.pending_amount, Decimal('500.00'))
        self.assertEqual(vendor.status, PaymentStatus.PENDING)
        self.assertEqual(vendor.paid_amount, Decimal('0.00'))

    def test_zero_total_is_paid(self):
        vendor = Vendor.objects.create(name='Free', contact_number=CONTACT, total_amount=Decimal('0.00'))
        self.assertEqual(vendor.status, PaymentStatus.PAID)


class VendorAPITestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username='clerk', password='clerk-pass-123')

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(self.user)

    def create_vendor(self, **overrides):
        payload = {
            'name': 'Acme Supplies',
            'contact_number': CONTACT,
            'address': '1600 Amphitheatre Pkwy',
            'total_amount': '1000.00',
        }
        payload.update(overrides)
        return self.client.post('/api/vendors/', payload, format='json')

    def test_create_vendor(self):
        response = self.create_vendor()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        body = response.json()
        self.assertTrue(body['success'])
        self.assertEqual(body['message'], 'Vendor added successfully')
        data = body['data']
        self.assertEqual(data['name'], 'Acme Supplies')
        self.assertEqual(data['contact_number'], CONTACT)
        self.assertEqual(Decimal(data['pending_amount']), Decimal('1000'))
        self.assertEqual(data['status'], 'Pending')
        self.assertIsNone(data['bill_url'])

    def test_create_rejects_negative_total(self):
        response = self.create_vendor(total_amount='-5')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['message']['total_amount'], ['Invalid total_amount'])
        self.assertFalse(Vendor.objects.exists())

    def test_create_requires_fields(self):
        response = self.client.post('/api/vendors/', {'address': 'nowhere'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        errors = response.json()['message']
        for field in ('name', 'contact_number', 'total_amount'):
            self.assertEqual(errors[field], ['Name, contact, and total amount are required'])
        self.assertFalse(Vendor.objects.exists())

    def test_create_rejects_bad_phone_number(self):
        response = self.create_vendor(contact_number='not-a-number')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('contact_number', response.json()['message'])

    def test_list_vendors(self):
        self.create_vendor(name='First')
        second_id = self.create_vendor(name='Second', total_amount='200.00').json()['data']['id']
        PaymentLedgerService.add_payment(second_id, Decimal('50'))

        response = self.client.get('/api/vendors/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()['data']
        self.assertEqual([v['name'] for v in data], ['First', 'Second'])
        self.assertEqual([v['status'] for v in data], ['Pending', 'Partial'])

    def test_retrieve_vendor_with_transactions(self):
        vendor_id = self.create_vendor().json()['data']['id']
        PaymentLedgerService.add_payment(vendor_id, Decimal('100'), note='first')
        PaymentLedgerService.add_payment(vendor_id, Decimal('200'), note='second')

        response = self.client.get(f'/api/vendors/{vendor_id}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()['data']
        self.assertEqual(Decimal(data['pending_amount']), Decimal('700'))
        self.assertEqual(len(data['transactions']), 2)
        self.assertEqual({t['note'] for t in data['transactions']}, {'first', 'second'})

    def test_retrieve_errors(self):
        response = self.client.get('/api/vendors/424242/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()['message'], 'Vendor not found')

        response = self.client.get('/api/vendors/abc/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_merges_fields(self):
        vendor_id = self.create_vendor().json()['data']['id']

        response = self.client.put(f'/api/vendors/{vendor_id}/', {'name': 'Acme Renamed', 'address': ''}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        vendor = Vendor.objects.get(id=vendor_id)
        self.assertEqual(vendor.name, 'Acme Renamed')
        self.assertEqual(vendor.address, '1600 Amphitheatre Pkwy')
        self.assertEqual(vendor.pending_amount, Decimal('1000.00'))
        self.assertFalse(Transaction.objects.exists())

    def test_update_with_new_payment(self):
        vendor_id = self.create_vendor().json()['data']['id']

        response = self.client.put(f'/api/vendors/{vendor_id}/', {'new_paid_amount': '200'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()['data']
        self.assertEqual(Decimal(data['paid_amount']), Decimal('200'))
        self.assertEqual(data['status'], 'Partial')
        self.assertEqual(Decimal(data['pending_amount']), Decimal('800'))

        payment = Transaction.objects.get(vendor_id=vendor_id)
        self.assertEqual(payment.amount, Decimal('200.00'))
        self.assertEqual(payment.note, 'Payment update')
        self.assertEqual(payment.status, PaymentStatus.PARTIAL)

    def test_update_total_keeps_amount_already_paid(self):
        vendor_id = self.create_vendor().json()['data']['id']
        PaymentLedgerService.add_payment(vendor_id, Decimal('200'))

        response = self.client.patch(f'/api/vendors/{vendor_id}/', {'total_amount': '1500.00'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()['data']
        self.assertEqual(Decimal(data['pending_amount']), Decimal('1300'))
        self.assertEqual(Decimal(data['paid_amount']), Decimal('200'))
        self.assertEqual(data['status'], 'Partial')

    def test_update_paying_off_the_bill(self):
        vendor_id = self.create_vendor(total_amount='300.00').json()['data']['id']

        response = self.client.put(f'/api/vendors/{vendor_id}/', {'new_paid_amount': '500'}, format='json')

        data = response.json()['data']
        self.assertEqual(Decimal(data['pending_amount']), Decimal('0'))
        self.assertEqual(data['status'], 'Paid')

    def test_update_errors(self):
        vendor_id = self.create_vendor().json()['data']['id']

        response = self.client.put('/api/vendors/999999/', {'name': 'Ghost'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = self.client.put(f'/api/vendors/{vendor_id}/', {'new_paid_amount': '-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.put(f'/api/vendors/{vendor_id}/', {'total_amount': '-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_vendor_removes_transactions(self):
        vendor_id = self.create_vendor().json()['data']['id']
        PaymentLedgerService.add_payment(vendor_id, Decimal('100'))

        response = self.client.delete(f'/api/vendors/{vendor_id}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['data']['id'], vendor_id)
        self.assertFalse(Vendor.objects.filter(id=vendor_id).exists())
        self.assertFalse(Transaction.objects.filter(vendor_id=vendor_id).exists())

        response = self.client.delete(f'/api/vendors/{vendor_id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_blank_payment_in_form_means_no_payment(self):
        vendor_id = self.create_vendor().json()['data']['id']

        response = self.client.put(f'/api/vendors/{vendor_id}/',
                                   {'name': 'Form Vendor', 'new_paid_amount': ''}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()['data']
        self.assertEqual(data['name'], 'Form Vendor')
        self.assertEqual(Decimal(data['paid_amount']), Decimal('0'))
        self.assertEqual(Decimal(data['pending_amount']), Decimal('1000'))
        self.assertFalse(Transaction.objects.exists())

    def test_update_null_payment_means_no_payment(self):
        vendor_id = self.create_vendor().json()['data']['id']

        response = self.client.put(f'/api/vendors/{vendor_id}/', {'new_paid_amount': None}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['data']['status'], 'Pending')
        self.assertFalse(Transaction.objects.exists())

    def test_requires_authentication(self):
        response = APIClient().get('/api/vendors/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class VendorAdminTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.admin_user = User.objects.create_superuser(username='boss', email='boss@test.com', password='boss-pass-123')

    def setUp(self):
        self.vendor = Vendor.objects.create(name='Acme', contact_number=CONTACT, total_amount=Decimal('1000.00'))
        self.model_admin = VendorAdmin(Vendor, admin.site)

    def test_total_is_read_only_once_created(self):
        request = RequestFactory().get('/admin/')

        self.assertNotIn('total_amount', self.model_admin.get_readonly_fields(request))
        self.assertIn('total_amount', self.model_admin.get_readonly_fields(request, self.vendor))
        self.assertIn('pending_amount', self.model_admin.get_readonly_fields(request, self.vendor))

    def test_change_form_ignores_posted_total(self):
        self.client.force_login(self.admin_user)
        url = reverse('admin:vendors_vendor_change', args=[self.vendor.id])

        response = self.client.post(url, {
            'name': 'Acme Renamed',
            'contact_number': CONTACT,
            'address': '',
            'bill_url': '',
            'total_amount': '1500.00',
            '_save': 'Save',
        })

        self.assertEqual(response.status_code, 302)
        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.name, 'Acme Renamed')
        self.assertEqual(self.vendor.total_amount, Decimal('1000.00'))
        self.assertEqual(self.vendor.pending_amount, Decimal('1000.00'))
        self.assertEqual(self.vendor.status, PaymentStatus.PENDING)


class BillUploadTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username='clerk', password='clerk-pass-123')

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)
        settings_override = override_settings(MEDIA_ROOT=self.media_root)
        settings_override.enable()
        self.addCleanup(settings_override.disable)

        self.client = APIClient()
        self.client.force_authenticate(self.user)

    def stored_bills(self):
        folder = os.path.join(self.media_root, settings.BILL_UPLOAD_DIR)
        return os.listdir(folder) if os.path.isdir(folder) else []

    def post_with_bill(self, bill):
        return self.client.post('/api/vendors/', {
            'name': 'Paper Co',
            'contact_number': CONTACT,
            'total_amount': '250.00',
            'bill': bill,
        }, format='multipart')

    def test_create_with_bill(self):
        bill = SimpleUploadedFile('invoice.pdf', b'%PDF-1.4 bill', content_type='application/pdf')

        response = self.post_with_bill(bill)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        bill_url = response.json()['data']['bill_url']
        self.assertTrue(bill_url.endswith('.pdf'))
        self.assertIn('vendor_bills/', bill_url)
        self.assertEqual(Vendor.objects.get().bill_url, bill_url)
        self.assertEqual(len(self.stored_bills()), 1)

    def test_rejects_unsupported_file_type(self):
        bill = SimpleUploadedFile('invoice.exe', b'MZ', content_type='application/octet-stream')

        response = self.post_with_bill(bill)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('bill', response.json()['message'])
        self.assertFalse(Vendor.objects.exists())

    def test_storage_failure_creates_nothing(self):
        bill = SimpleUploadedFile('invoice.pdf', b'%PDF-1.4 bill', content_type='application/pdf')

        with patch('vendors.storage.default_storage') as storage:
            storage.save.side_effect = OSError('disk full')
            response = self.post_with_bill(bill)

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.json()['message'], 'Bill upload failed')
        self.assertFalse(Vendor.objects.exists())

    def test_update_replaces_bill(self):
        vendor = Vendor.objects.create(name='Paper Co', contact_number=CONTACT, total_amount=Decimal('250.00'))
        bill = SimpleUploadedFile('receipt.png', b'\x89PNG', content_type='image/png')

        response = self.client.put(f'/api/vendors/{vendor.id}/', {'bill': bill}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        vendor.refresh_from_db()
        self.assertTrue(vendor.bill_url.endswith('.png'))

    def test_failed_create_removes_stored_bill(self):
        bill = SimpleUploadedFile('invoice.pdf', b'%PDF-1.4 bill', content_type='application/pdf')

        with patch.object(VendorManager, 'create', side_effect=DatabaseError('insert failed')):
            with self.assertRaises(DatabaseError):
                VendorService.create_vendor('Paper Co', CONTACT, Decimal('250.00'), bill_file=bill)

        self.assertEqual(self.stored_bills(), [])
        self.assertFalse(Vendor.objects.exists())

    def test_vendor_removed_before_lock_leaves_no_bill(self):
        vendor = Vendor.objects.create(name='Paper Co', contact_number=CONTACT, total_amount=Decimal('250.00'))
        bill = SimpleUploadedFile('receipt.png', b'\x89PNG', content_type='image/png')

        with patch.object(VendorManager, 'get_with_lock', side_effect=Vendor.DoesNotExist):
            response = self.client.put(f'/api/vendors/{vendor.id}/', {'bill': bill}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.stored_bills(), [])
        vendor.refresh_from_db()
        self.assertIsNone(vendor.bill_url)

    def test_validate_reports_size_limit(self):
        service = BillStorageService()
        bill = SimpleUploadedFile('big.pdf', b'x', content_type='application/pdf')
        bill.size = BillStorageService.MAX_FILE_SIZE + 1

        errors = service.validate(bill)

        self.assertEqual(len(errors), 1)
        self.assertIn('exceeds maximum', errors[0])
