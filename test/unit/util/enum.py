"""
Unit tests for the torutils.util.enum class and functions.
"""

import unittest

import torutils

from torutils.util import enum


class TestEnum(unittest.TestCase):
  def test_uppercase_enum(self):
    methods = enum.UppercaseEnum('NONE', 'HASHEDPASSWORD', 'SAFECOOKIE')

    self.assertEqual('SAFECOOKIE', methods.SAFECOOKIE)
    self.assertEqual(['NONE', 'HASHEDPASSWORD', 'SAFECOOKIE'], list(methods))
    self.assertEqual(['NONE', 'HASHEDPASSWORD', 'SAFECOOKIE'], methods.keys())
    self.assertEqual(3, len(methods))

    self.assertTrue('SAFECOOKIE' in methods)
    self.assertFalse('COOKIE' in methods)

  def test_enum_values(self):
    insects = enum.Enum('ANT', 'WASP', 'LADYBUG', ('FIREFLY', 'Bioluminescent Beetle'))

    self.assertEqual('Ant', insects.ANT)
    self.assertEqual('Ladybug', insects.LADYBUG)
    self.assertEqual('Bioluminescent Beetle', insects.FIREFLY)
    self.assertEqual(('Ant', 'Wasp', 'Ladybug', 'Bioluminescent Beetle'), tuple(insects))

    pets = enum.Enum('DOG', 'HAMSTER', 'CAT_IN_HAT')
    self.assertEqual('Cat In Hat', pets.CAT_IN_HAT)

  def test_index_of(self):
    self.assertEqual(0, torutils.AuthMethod.index_of('NONE'))
    self.assertEqual(3, torutils.AuthMethod.index_of('SAFECOOKIE'))
    self.assertRaises(ValueError, torutils.AuthMethod.index_of, 'BLARG')

  def test_getitem(self):
    self.assertEqual('NEWNYM', torutils.Signal['NEWNYM'])
    self.assertRaises(ValueError, torutils.Signal.__getitem__, 'BLARG')

  def test_invalid_input(self):
    self.assertRaises(ValueError, enum.Enum, 5)
    self.assertRaises(ValueError, enum.Enum, ('A', 'B', 'C'))
