"""Static state → district reference table used for coverage validation."""

from __future__ import annotations

STATE_DISTRICTS: dict[str, tuple[str, ...]] = {
    "Andhra Pradesh": (
        "Visakhapatnam", "Vijayawada", "Guntur", "Nellore", "Kurnool",
        "Rajahmundry", "Tirupati", "Kakinada", "Kadapa", "Anantapur",
    ),
    "Bihar": (
        "Patna", "Gaya", "Bhagalpur", "Muzaffarpur", "Purnia",
        "Darbhanga", "Bihar Sharif", "Arrah", "Begusarai", "Katihar",
    ),
    "Delhi": (
        "New Delhi", "North Delhi", "South Delhi", "East Delhi",
        "West Delhi", "Central Delhi", "North East Delhi",
        "North West Delhi", "South East Delhi", "South West Delhi",
    ),
    "Gujarat": (
        "Ahmedabad", "Surat", "Vadodara", "Rajkot", "Gandhinagar",
        "Bhavnagar", "Jamnagar", "Junagadh", "Anand", "Nadiad",
    ),
    "Haryana": (
        "Gurgaon", "Faridabad", "Panipat", "Ambala", "Yamunanagar",
        "Rohtak", "Hisar", "Karnal", "Sonipat", "Panchkula",
    ),
    "Karnataka": (
        "Bangalore", "Mysore", "Mangalore", "Hubli", "Belgaum",
        "Tumkur", "Shimoga", "Bellary", "Gulbarga", "Davangere",
    ),
    "Kerala": (
        "Thiruvananthapuram", "Kochi", "Kozhikode", "Thrissur", "Kollam",
        "Palakkad", "Alappuzha", "Kannur", "Kottayam", "Malappuram",
    ),
    "Madhya Pradesh": (
        "Bhopal", "Indore", "Gwalior", "Jabalpur", "Ujjain",
        "Sagar", "Ratlam", "Satna", "Dewas", "Rewa",
    ),
    "Maharashtra": (
        "Mumbai", "Pune", "Nagpur", "Thane", "Nashik", "Aurangabad",
        "Solapur", "Kolhapur", "Ahmednagar", "Amravati", "Satara",
    ),
    "Punjab": (
        "Chandigarh", "Ludhiana", "Amritsar", "Jalandhar", "Patiala",
        "Bathinda", "Mohali", "Hoshiarpur", "Firozpur", "Pathankot",
    ),
    "Rajasthan": (
        "Jaipur", "Jodhpur", "Udaipur", "Kota", "Ajmer",
        "Bikaner", "Alwar", "Bharatpur", "Bhilwara", "Sikar",
    ),
    "Tamil Nadu": (
        "Chennai", "Coimbatore", "Madurai", "Trichy", "Salem",
        "Tirunelveli", "Erode", "Vellore", "Thoothukudi", "Dindigul",
    ),
    "Telangana": (
        "Hyderabad", "Warangal", "Nizamabad", "Karimnagar",
        "Khammam", "Mahbubnagar", "Nalgonda", "Rangareddy", "Medak",
    ),
    "Uttar Pradesh": (
        "Lucknow", "Kanpur", "Agra", "Varanasi", "Meerut",
        "Noida", "Ghaziabad", "Allahabad", "Gorakhpur", "Bareilly",
    ),
    "West Bengal": (
        "Kolkata", "Howrah", "Durgapur", "Siliguri", "Asansol",
        "Bardhaman", "Malda", "Darjeeling", "Midnapore", "Hooghly",
    ),
}


def is_known_state(state: str) -> bool:
    return state in STATE_DISTRICTS


def districts_for_states(states: set[str] | frozenset[str]) -> set[str]:
    """Union of districts across the given states (unknown states contribute nothing)."""
    districts: set[str] = set()
    for state in states:
        districts.update(STATE_DISTRICTS.get(state, ()))
    return districts
