"""HTML bodies for auction e-mails."""

from auction_platform.services.financial import format_currency

FOOTER = """
      <hr style="border: none; border-top: 1px solid #ddd; margin: 30px 0;">
      <small style="color: #999;">Digital Auction Platform Team</small>
    </div>
"""


def auction_won_html(
    winner_name: str,
    product_title: str,
    final_bid_amount,
    delivery_fee,
    total_amount,
    seller_phone: str,
) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2 style="color: #0070f3;">Congratulations, {winner_name}!</h2>
      <p>You have won the auction for <strong>{product_title}</strong>!</p>
      <div style="background-color: #f5f5f5; padding: 20px; border-radius: 8px; margin: 20px 0;">
        <h3 style="margin-top: 0;">Payment Details:</h3>
        <table style="width: 100%; border-collapse: collapse;">
          <tr><td><strong>Winning Bid:</strong></td><td style="text-align: right;">{format_currency(final_bid_amount)}</td></tr>
          <tr><td><strong>Delivery Fee:</strong></td><td style="text-align: right;">{format_currency(delivery_fee)}</td></tr>
          <tr style="border-top: 2px solid #333;">
            <td><strong>Total to Pay:</strong></td>
            <td style="text-align: right; font-size: 20px; color: #0070f3;"><strong>{format_currency(total_amount)}</strong></td>
          </tr>
        </table>
      </div>
      <div style="background-color: #fff3cd; padding: 15px; border-radius: 8px; border-left: 4px solid #ffc107;">
        <h3 style="margin-top: 0; color: #856404;">Delivery Instructions:</h3>
        <p>Our delivery partner will contact you shortly to arrange delivery.</p>
        <p><strong>Payment:</strong> Please pay the delivery agent <strong>{format_currency(total_amount)}</strong> in cash upon receiving your item.</p>
        <p><strong>Seller Contact:</strong> {seller_phone}</p>
      </div>
      <p style="color: #666; font-size: 14px; margin-top: 30px;">If you have any questions, please contact support.</p>
{FOOTER}"""


def auction_sold_html(
    seller_name: str,
    product_title: str,
    final_bid_amount,
    platform_commission,
    seller_payout,
    winner_name: str,
    winner_phone: str,
) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2 style="color: #28a745;">Great News, {seller_name}!</h2>
      <p>Your item <strong>{product_title}</strong> has been sold!</p>
      <div style="background-color: #f5f5f5; padding: 20px; border-radius: 8px; margin: 20px 0;">
        <h3 style="margin-top: 0;">Financial Summary:</h3>
        <table style="width: 100%; border-collapse: collapse;">
          <tr><td><strong>Final Bid:</strong></td><td style="text-align: right;">{format_currency(final_bid_amount)}</td></tr>
          <tr><td><strong>Platform Commission:</strong></td><td style="text-align: right; color: #dc3545;">-{format_currency(platform_commission)}</td></tr>
          <tr style="border-top: 2px solid #333;">
            <td><strong>Your Payout:</strong></td>
            <td style="text-align: right; font-size: 20px; color: #28a745;"><strong>{format_currency(seller_payout)}</strong></td>
          </tr>
        </table>
      </div>
      <div style="background-color: #d1ecf1; padding: 15px; border-radius: 8px; border-left: 4px solid #0c5460;">
        <h3 style="margin-top: 0; color: #0c5460;">Next Steps:</h3>
        <p>1. Our delivery partner will contact you to arrange item pickup</p>
        <p>2. They will collect <strong>{format_currency(final_bid_amount)}</strong> from the buyer</p>
        <p>3. You will receive <strong>{format_currency(seller_payout)}</strong> after delivery confirmation</p>
      </div>
      <div style="background-color: #f8f9fa; padding: 15px; border-radius: 8px; margin: 20px 0;">
        <h3 style="margin-top: 0;">Buyer Information:</h3>
        <p><strong>Name:</strong> {winner_name}</p>
        <p><strong>Phone:</strong> {winner_phone}</p>
      </div>
{FOOTER}"""


def auction_ended_no_bids_html(seller_name: str, product_title: str) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2>Auction Ended</h2>
      <p>Hello {seller_name},</p>
      <p>Your auction for <strong>{product_title}</strong> has ended.</p>
      <p>Unfortunately, there were no bids placed on this item.</p>
      <p>You can:</p>
      <ul>
        <li>Edit the product and create a new auction</li>
        <li>Adjust the starting price</li>
        <li>Add more details or better images</li>
      </ul>
{FOOTER}"""


def delivery_confirmed_html(product_title: str) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2>Delivery Confirmed</h2>
      <p>Your item <strong>{product_title}</strong> has been delivered successfully.</p>
      <p>Thank you for using Digital Auction Platform!</p>
{FOOTER}"""


def payment_received_html(product_title: str, seller_payout) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2>Payment Received</h2>
      <p>Your item <strong>{product_title}</strong> has been delivered and payment confirmed.</p>
      <p><strong>Your payout:</strong> {format_currency(seller_payout)}</p>
      <p>The funds will be transferred to your account shortly.</p>
{FOOTER}"""
